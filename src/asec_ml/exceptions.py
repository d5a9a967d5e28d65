"""
Error taxonomy for the ASEC-ML pipeline.

Fatal errors (DataIntegrityError, ConfigurationError) abort a run with a
diagnostic naming the offending field, record or parameter. DegenerateFoldError
is recovered locally by the trainer. SchemaMismatchError is fatal only for the
evaluation call that raised it.
"""


class AsecMLError(Exception):
    """Base class for all pipeline errors."""


class DataIntegrityError(AsecMLError):
    """A required field is absent, or the category manifest lacks a needed variable."""

    def __init__(self, message: str, field: str | None = None, record: object | None = None):
        self.field = field
        self.record = record
        super().__init__(message)


class ManifestMismatchError(DataIntegrityError):
    """Observed category levels exceed the count declared in the manifest."""

    def __init__(
        self,
        variable: str,
        expected: int,
        observed: int,
        year: object | None = None,
    ):
        self.expected = expected
        self.observed = observed
        self.year = year
        where = f" in year {year}" if year is not None else ""
        super().__init__(
            f"Manifest declares {expected} categories for '{variable}' but "
            f"{observed} distinct recognized levels were observed{where}",
            field=variable,
        )


class DegenerateFoldError(AsecMLError):
    """A fold partition holds a single label class, so it cannot be fit or scored."""

    def __init__(self, message: str, fold: int | None = None):
        self.fold = fold
        super().__init__(message)


class ConfigurationError(AsecMLError, ValueError):
    """An invalid parameter, detected before any data processing."""


class SchemaMismatchError(AsecMLError):
    """An evaluation dataset lacks features the trained model expects."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        preview = ", ".join(self.missing[:10])
        more = f" (+{len(self.missing) - 10} more)" if len(self.missing) > 10 else ""
        super().__init__(
            f"Dataset is missing {len(self.missing)} expected feature(s): {preview}{more}"
        )
