"""
Tests for extract reading, feature-set selection and split persistence.
"""

import numpy as np
import pandas as pd
import pytest
from conftest import make_raw_frame

from asec_ml.data.columns import resolve_feature_columns, split_features_target
from asec_ml.data.io import get_data_stats, read_extract
from asec_ml.data.normalize import RAW_COLUMNS, normalize_frame
from asec_ml.data.persistence import (
    load_split_indices,
    save_split_indices,
    save_split_metadata,
    verify_split_files,
)
from asec_ml.data.schema import get_feature_columns
from asec_ml.data.splits import split_indices, summarize_split
from asec_ml.exceptions import DataIntegrityError

# ============================================================================
# Reading
# ============================================================================


class TestReadExtract:
    """Extract loading."""

    def test_csv(self, tmp_path):
        path = tmp_path / "extract.csv"
        make_raw_frame(n=20).to_csv(path, index=False)
        df = read_extract(path)
        assert len(df) == 20
        assert set(df.columns) == set(RAW_COLUMNS)

    def test_parquet(self, tmp_path):
        path = tmp_path / "extract.parquet"
        make_raw_frame(n=20).to_parquet(path, index=False)
        df = read_extract(path)
        assert len(df) == 20

    def test_extra_columns_dropped(self, tmp_path):
        path = tmp_path / "extract.csv"
        make_raw_frame(n=5, JUNK=1).to_csv(path, index=False)
        assert "JUNK" not in read_extract(path).columns
        assert "JUNK" in read_extract(path, keep_all_columns=True).columns

    def test_normalized_frame_accepted(self, tmp_path):
        path = tmp_path / "normalized.csv"
        normalize_frame(make_raw_frame(n=5)).to_csv(path, index=False)
        df = read_extract(path)
        assert "employed" in df.columns

    def test_missing_field(self, tmp_path):
        path = tmp_path / "extract.csv"
        make_raw_frame(n=5).drop(columns=["EMPSTAT"]).to_csv(path, index=False)
        with pytest.raises(DataIntegrityError, match="EMPSTAT"):
            read_extract(path)

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_extract(tmp_path / "nope.csv")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "extract.dat"
        path.write_text("x")
        with pytest.raises(ValueError, match="Unsupported file format"):
            read_extract(path)


class TestDataStats:
    def test_counts(self):
        df = normalize_frame(make_raw_frame(n=10, EMPSTAT=[10] * 6 + [21] * 4))
        stats = get_data_stats(df)
        assert stats["n_rows"] == 10
        assert stats["rows_by_year"] == {2019: 10}
        assert stats["n_labeled"] == 10
        assert stats["n_employed"] == 6


# ============================================================================
# Feature Selection
# ============================================================================


class TestResolveFeatureColumns:
    def test_all(self):
        cols = get_feature_columns("all")
        assert resolve_feature_columns(cols + ["year"], "all") == cols

    def test_exclude(self):
        cols = get_feature_columns("all") + ["immigrant"]
        out = resolve_feature_columns(cols, "all", exclude=["citizen"])
        assert "citizen" not in out

    def test_missing(self):
        with pytest.raises(DataIntegrityError, match="needs column"):
            resolve_feature_columns(["age"], "demographic")

    def test_unknown_set(self):
        with pytest.raises(ValueError, match="Unknown feature set"):
            resolve_feature_columns(["age"], "bogus")


class TestSplitFeaturesTarget:
    def test_xy(self):
        df = pd.DataFrame({"age": [30.0, 40.0], "employed": [1.0, 0.0]}, index=[5, 9])
        X, y = split_features_target(df, ["age"])
        assert X.index.tolist() == [0, 1]
        np.testing.assert_array_equal(y, [1, 0])
        assert y.dtype.kind == "i"

    def test_unlabeled(self):
        df = pd.DataFrame({"age": [30.0, 40.0], "employed": [1.0, np.nan]})
        with pytest.raises(DataIntegrityError, match="no 'employed' label"):
            split_features_target(df, ["age"])


# ============================================================================
# Split Persistence
# ============================================================================


class TestSplitPersistence:
    """Saving and reloading train/test indices."""

    def setup_method(self):
        self.y = np.array([1] * 30 + [0] * 20)
        self.train, self.test = split_indices(self.y, 0.8, seed=4)

    def test_round_trip(self, tmp_path):
        save_split_indices(str(tmp_path), 4, self.train, self.test)
        train, test = load_split_indices(str(tmp_path), 4)
        np.testing.assert_array_equal(train, self.train)
        np.testing.assert_array_equal(test, self.test)

    def test_refuses_overwrite(self, tmp_path):
        save_split_indices(str(tmp_path), 4, self.train, self.test)
        with pytest.raises(FileExistsError):
            save_split_indices(str(tmp_path), 4, self.train, self.test)
        save_split_indices(str(tmp_path), 4, self.train, self.test, overwrite=True)

    def test_rejects_overlap(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid split indices"):
            save_split_indices(str(tmp_path), 0, np.array([0, 1]), np.array([1, 2]))

    def test_verify(self, tmp_path):
        save_split_indices(str(tmp_path), 4, self.train, self.test)
        summary = summarize_split(self.train, self.test, self.y[self.train], self.y[self.test])
        save_split_metadata(str(tmp_path), 4, summary, {"n_in": 50})
        assert verify_split_files(str(tmp_path), 4)

    def test_verify_detects_tampering(self, tmp_path):
        save_split_indices(str(tmp_path), 4, self.train, self.test)
        summary = summarize_split(self.train, self.test, self.y[self.train], self.y[self.test])
        save_split_metadata(str(tmp_path), 4, summary)
        tampered = np.sort(np.concatenate([self.test[1:], self.train[:1]]))
        pd.DataFrame({"idx": tampered}).to_csv(tmp_path / "test_idx_seed4.csv", index=False)
        assert not verify_split_files(str(tmp_path), 4)
