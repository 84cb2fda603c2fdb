"""
grainsigma Sequencer
====================

Runs the stages in order. Pure orchestration — no computation here.

    01  empirical_sigma   samples -> external_sigma, empirical_sigma
    02  plot              error-bar figure (only when a plot path is set)

Settings come from manifest.yaml (see grainsigma.config); CLI flags
override the manifest. Any validation or parameter error aborts before
anything is written.

Usage:
    python -m grainsigma examples/zircon_he
    python -m grainsigma examples/zircon_he --bandwidth 50 --plot out.png
    python -m grainsigma samples.csv --output result.csv
"""

import argparse
import logging
import time
from pathlib import Path
from typing import Optional

import polars as pl

from grainsigma.config import EstimatorConfig, load_config
from grainsigma.io.manifest import load_manifest, resolve_path

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = 'output/empirical_sigma.csv'


def run(
    samples_path: str,
    manifest_path: Optional[str] = None,
    output_path: Optional[str] = None,
    plot_path: Optional[str] = None,
    config: Optional[EstimatorConfig] = None,
    verbose: bool = True,
) -> pl.DataFrame:
    """
    Run the empirical uncertainty pipeline.

    Args:
        samples_path: Samples table (.csv, .tsv, .txt, .parquet)
        manifest_path: Optional manifest.yaml (columns, estimator, covariate)
        output_path: Result table path (None = don't write)
        plot_path: Error-bar figure path (None = no figure)
        config: Explicit settings; takes precedence over manifest_path
        verbose: Print progress

    Returns:
        Result DataFrame
    """
    from grainsigma.stages import empirical_sigma, plot

    if config is None:
        manifest = load_manifest(manifest_path) if manifest_path else {}
        config = load_config(manifest)

    logger.debug("run: samples=%s config=%s", samples_path, config)

    t0 = time.time()
    result = empirical_sigma.run(
        samples_path,
        output_path=output_path,
        config=config,
        verbose=verbose,
    )

    if plot_path:
        plot.run(result, plot_path, title=Path(samples_path).stem, verbose=verbose)

    if verbose:
        print(f"\nDone: {result.height} samples in {time.time() - t0:.2f}s")

    return result


def main():
    """CLI entry point. Resolves data_path into explicit paths and calls run()."""
    parser = argparse.ArgumentParser(
        description="Empirical uncertainty for single-grain dates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
data_path is either a directory with manifest.yaml or a samples file.

Usage:
  python -m grainsigma ~/data/zircon_he
  python -m grainsigma ~/data/zircon_he --bandwidth 50 --plot fig.png
  python -m grainsigma samples.csv --output result.csv
"""
    )
    parser.add_argument('data_path', help='Directory with manifest.yaml, or a samples file')
    parser.add_argument('--bandwidth', type=float, help='Kernel bandwidth in covariate units')
    parser.add_argument('--output', help='Result table path (.csv, .tsv, .parquet)')
    parser.add_argument('--plot', help='Error-bar figure path (.png, .pdf, .svg)')
    parser.add_argument('--n-jobs', type=int, help='Parallel workers for the per-sample loop')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    parser.add_argument('-q', '--quiet', action='store_true', help='Suppress output')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    data_path = Path(args.data_path)

    if data_path.is_dir():
        manifest = load_manifest(str(data_path))
        samples_path = resolve_path(manifest, 'samples', 'samples.csv')
        output_path = args.output or resolve_path(manifest, 'output', DEFAULT_OUTPUT)
        plot_path = args.plot or resolve_path(manifest, 'plot')
    else:
        manifest = {}
        samples_path = str(data_path)
        output_path = args.output or str(data_path.parent / DEFAULT_OUTPUT)
        plot_path = args.plot

    config = load_config(manifest).override(
        bandwidth=args.bandwidth,
        n_jobs=args.n_jobs,
    )

    run(
        samples_path=samples_path,
        output_path=output_path,
        plot_path=plot_path,
        config=config,
        verbose=not args.quiet,
    )


if __name__ == '__main__':
    main()
