"""CLI entry point for mangrovemapper."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Iterable, Optional

import ee

from mangrovemapper.analysis import WORKFLOWS, AnomalyWorkflow
from mangrovemapper.config import PipelineConfig, load_config
from mangrovemapper.earthengine import EarthEngineAuthError, EarthEngineSession, resolve_study_area
from mangrovemapper.export import DownloadError, ExportManager, ExportSubmissionError, download_geotiff
from mangrovemapper.logging import configure_logging, get_logger
from mangrovemapper.preprocessing import prepare_collection

LOGGER = get_logger(__name__)

DEFAULT_CONFIG = Path("configs/base/pipeline.yaml")


def _load_env(env_path: Optional[Path] = None) -> None:
    """Export ``KEY=value`` pairs (EE_PROJECT, EE_SERVICE_ACCOUNT, ...) unless already set."""

    env_path = env_path or Path.cwd() / ".env"
    if not env_path.is_file():
        return
    try:
        lines = env_path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:  # pragma: no cover - filesystem errors
        LOGGER.warning("Failed to load .env file", extra={"path": str(env_path), "error": str(exc)})
        return
    for line in lines:
        entry = line.strip()
        if entry.startswith("export "):
            entry = entry[len("export "):].lstrip()
        key, sep, value = entry.partition("=")
        if entry.startswith("#") or not sep or not key.strip():
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        os.environ.setdefault(key.strip(), value)


def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to pipeline configuration file (YAML or JSON, default: {DEFAULT_CONFIG})",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Landsat mangrove change detection on Google Earth Engine")
    parser.add_argument("--log-json", action="store_true", help="Emit logs in JSON format")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    subcommands = parser.add_subparsers(dest="command", required=True)

    help_text = {
        "ccdc": "Run CCDC break detection and export the strongest NDVI loss",
        "anomaly": "Map bitemporal mangrove change and NDVI anomaly",
        "composites": "Build and export median composites and quality mosaics",
    }
    for name in WORKFLOWS:
        workflow = subcommands.add_parser(name, help=help_text.get(name))
        _add_config_argument(workflow)
        workflow.add_argument(
            "--dry-run",
            action="store_true",
            help="Build the graph and log exports without starting tasks",
        )
        workflow.add_argument(
            "--manifest",
            type=Path,
            default=None,
            help=f"Export manifest path (defaults to output_dir/{name}_exports.json)",
        )
        if name == AnomalyWorkflow.name:
            workflow.add_argument(
                "--skip-stats",
                action="store_true",
                help="Do not compute gain/loss area and anomaly summaries",
            )

    inspect = subcommands.add_parser("inspect", help="Report size and bands of the prepared Landsat collection")
    _add_config_argument(inspect)
    inspect.add_argument("--start", default=None, help="Start date filter (YYYY-MM-DD)")
    inspect.add_argument("--end", default=None, help="End date filter (YYYY-MM-DD)")

    fetch = subcommands.add_parser("fetch", help="Download one workflow product as GeoTIFF")
    _add_config_argument(fetch)
    fetch.add_argument("--workflow", choices=sorted(WORKFLOWS), required=True, help="Workflow that builds the product")
    fetch.add_argument("--product", required=True, help="Product name, e.g. break_year or anomaly")
    fetch.add_argument("--output", type=Path, required=True, help="Output GeoTIFF path")
    fetch.add_argument("--scale", type=float, default=None, help="Pixel size in metres (default: export.scale)")
    fetch.add_argument("--force", action="store_true", help="Download even if the output file already exists")
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    _load_env()
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    configure_logging(
        level=args.log_level,
        json_logs=args.log_json,
        log_file=args.log_file,
        workflow=args.command,
    )

    config_path = _resolve_config_path(args.config)

    try:
        cfg = load_config(config_path)
        EarthEngineSession.from_config(cfg.earthengine).initialize()
        if args.command in WORKFLOWS:
            return _handle_workflow(args, cfg)
        if args.command == "inspect":
            return _handle_inspect(args, cfg)
        if args.command == "fetch":
            return _handle_fetch(args, cfg)
    except EarthEngineAuthError as exc:
        LOGGER.error("Earth Engine login failed: %s", exc)
        return 1
    except ExportSubmissionError as exc:
        LOGGER.error("Export submission failed: %s", exc)
        return 1
    except DownloadError as exc:
        LOGGER.error("Download failed: %s", exc)
        return 1
    except ee.EEException as exc:
        LOGGER.error("Earth Engine request failed: %s", exc)
        return 1
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1
    parser.error("Unknown command")
    return 1


def _resolve_config_path(path: Path | None) -> Path:
    if path is not None:
        resolved = path.resolve()
        if not resolved.exists():
            raise SystemExit(f"Configuration file not found: {resolved}")
        return resolved
    if DEFAULT_CONFIG.exists():
        return DEFAULT_CONFIG.resolve()
    raise SystemExit(f"No configuration file found; supply --config or create {DEFAULT_CONFIG}")


def _handle_workflow(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    study_area = resolve_study_area(cfg.region, cfg.clip_collection)
    workflow = WORKFLOWS[args.command](cfg, study_area)
    products = workflow.build_products()

    exporter = ExportManager(cfg.export, study_area.region, dry_run=args.dry_run)
    generation_params = workflow.generation_params()
    manifest_path = args.manifest or (cfg.output_dir / f"{workflow.name}_exports.json")
    try:
        records = exporter.submit_many(workflow.export_requests(products))
        if isinstance(workflow, AnomalyWorkflow) and not args.skip_stats:
            generation_params["area_statistics"] = workflow.area_statistics()
            generation_params["anomaly_summary"] = workflow.anomaly_summary()
    finally:
        # Tasks already started keep running remotely even if a later step fails.
        exporter.write_manifest(manifest_path, workflow=workflow.name, generation_params=generation_params)

    LOGGER.info(
        "%s workflow complete",
        workflow.name,
        extra={
            "exports": [record.description for record in records],
            "dry_run": args.dry_run,
            "manifest": str(manifest_path),
        },
    )
    return 0


def _handle_inspect(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    study_area = resolve_study_area(cfg.region, cfg.clip_collection)
    try:
        collection = prepare_collection(cfg.landsat, study_area.region, start=args.start, end=args.end)
    except ValueError as exc:
        LOGGER.error(str(exc))
        return 1

    size = collection.size().getInfo()
    bands = collection.first().bandNames().getInfo() if size else []
    LOGGER.info("prepared collection", extra={"collection": cfg.landsat.collection, "size": size})
    print(f"images\t{size}")
    print(f"bands\t{', '.join(bands or [])}")
    return 0


def _handle_fetch(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    study_area = resolve_study_area(cfg.region, cfg.clip_collection)
    workflow = WORKFLOWS[args.workflow](cfg, study_area)
    products = workflow.build_products()
    if args.product not in products:
        LOGGER.error(
            "Unknown product %s for workflow %s; available: %s",
            args.product,
            args.workflow,
            ", ".join(sorted(products)),
        )
        return 1

    result = download_geotiff(
        products[args.product],
        study_area.region,
        args.output.resolve(),
        scale=args.scale or cfg.export.scale,
        force=args.force,
    )
    LOGGER.info(
        "fetch complete",
        extra={"path": str(result.path), "sha256": result.sha256, "size_bytes": result.size_bytes},
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
