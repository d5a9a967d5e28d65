"""
Main CLI entry point for the ASEC-ML pipeline.

Provides subcommands:
  - asec train: Train, compare and transfer employment classifiers
  - asec evaluate: Evaluate a saved model on any compatible extract
  - asec validate-manifest: Check the category manifest against each survey year
"""

import click

from asec_ml import __version__


@click.group()
@click.version_option(version=__version__, prog_name="asec")
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv)",
)
@click.pass_context
def cli(ctx, verbose):
    """
    ASEC-ML: Employment status classifiers on CPS ASEC survey extracts

    A reproducible pipeline that recodes survey records, builds fold-scoped
    preprocessing recipes and tunes two model families by cross-validation.
    """
    from asec_ml.utils.random import apply_seed_global

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    # Apply SEED_GLOBAL if set (for single-process reproducibility debugging)
    seed_applied = apply_seed_global()
    if seed_applied is not None:
        ctx.obj["seed_global"] = seed_applied


@cli.command("train")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to YAML configuration file",
)
@click.option(
    "--infile",
    type=click.Path(exists=True),
    default=None,
    help="Decoded extract (.csv or .parquet); overrides 'infile' in config",
)
@click.option(
    "--outdir",
    type=click.Path(),
    default=None,
    help="Output directory; overrides output.outdir",
)
@click.option(
    "--run-id",
    default=None,
    help="Run identifier recorded in outputs and log file name",
)
@click.option(
    "--override",
    multiple=True,
    help="Override config values (format: key=value or nested.key=value)",
)
@click.pass_context
def train(ctx, config, infile, outdir, run_id, override):
    """Train every configured model family, evaluate on the test split and transfer the winner."""
    from asec_ml.cli.train import run_train

    cli_args = {"infile": infile, "output.outdir": outdir, "run_id": run_id}
    run_train(
        config_file=config,
        cli_args=cli_args,
        overrides=list(override),
        verbose=ctx.obj.get("verbose", 0),
    )


@cli.command("evaluate")
@click.option(
    "--model-artifact",
    type=click.Path(exists=True),
    required=True,
    help="Model bundle (.joblib) written by 'asec train'",
)
@click.option(
    "--infile",
    type=click.Path(exists=True),
    required=True,
    help="Decoded extract (.csv or .parquet)",
)
@click.option(
    "--year",
    "years",
    type=int,
    multiple=True,
    help="Survey year to evaluate (can be repeated; default: every year present)",
)
@click.option(
    "--subgroup",
    "subgroups",
    multiple=True,
    help="Subpopulation as column=value, e.g. immigrant=1 (can be repeated)",
)
@click.option(
    "--threshold",
    type=float,
    default=0.5,
    show_default=True,
    help="Probability cut-off for the employed class",
)
@click.option(
    "--outdir",
    type=click.Path(),
    default="results/evaluate",
    show_default=True,
    help="Output directory for reports",
)
@click.pass_context
def evaluate(ctx, model_artifact, infile, years, subgroups, threshold, outdir):
    """Evaluate a saved model per survey year and subgroup."""
    from asec_ml.cli.evaluate import run_evaluate

    result = run_evaluate(
        model_artifact=model_artifact,
        infile=infile,
        outdir=outdir,
        years=tuple(years),
        subgroups=tuple(subgroups),
        threshold=threshold,
        verbose=ctx.obj.get("verbose", 0),
    )
    if result["failures"]:
        click.echo(f"{len(result['failures'])} dataset(s) could not be evaluated:", err=True)
        for name, error in result["failures"].items():
            click.echo(f"  {name}: {error}", err=True)


@cli.command("validate-manifest")
@click.option(
    "--infile",
    type=click.Path(exists=True),
    required=True,
    help="Decoded extract (.csv or .parquet)",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to YAML configuration file (selection and manifest)",
)
@click.option(
    "--manifest",
    "manifest_file",
    type=click.Path(exists=True),
    default=None,
    help="Category manifest YAML; overrides the manifest in config",
)
@click.pass_context
def validate_manifest(ctx, infile, config, manifest_file):
    """Check that no survey year holds more category levels than the manifest declares."""
    from asec_ml.cli.evaluate import run_validate_manifest

    report = run_validate_manifest(
        infile=infile,
        config_file=config,
        manifest_file=manifest_file,
        verbose=ctx.obj.get("verbose", 0),
    )
    click.echo(f"Manifest OK for {len(report)} survey year(s)")


if __name__ == "__main__":
    cli()
