from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, List

from kielcleanup.core.config import ENV_LOG_LEVEL, CleanupConfig, load_config
from kielcleanup.core.errors import CleanupError, ConfigurationError
from kielcleanup.core.images import match_images, resolve_image_prefix
from kielcleanup.core.normalization import normalize_record
from kielcleanup.core.record import XmlRecordStore
from kielcleanup.core.runtime.context import RunContext
from kielcleanup.core.runtime.pipeline import CleanupPipeline
from kielcleanup.core.workflow import SQLiteStepStatusStore, StepStatus
from kielcleanup.utils.json_safe import to_jsonable


def _json_default(o: Any) -> Any:
    return to_jsonable(o)


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False, default=_json_default))


def _load_config_or_empty(path: str | None) -> CleanupConfig:
    return load_config(path) if path else CleanupConfig()


def _step_store(args: argparse.Namespace) -> SQLiteStepStatusStore | None:
    if not getattr(args, "db", None):
        return None
    return SQLiteStepStatusStore(args.db, process_id=args.process_id)


def cmd_run(args: argparse.Namespace) -> int:
    """Run the full cleanup for one record document.

    Exit codes: 0 success, 1 run failed, 2 invalid configuration.
    """

    config = load_config(args.config)
    store = _step_store(args)
    pipeline = CleanupPipeline(
        config,
        XmlRecordStore(args.record),
        store,
        target_folder=args.target_folder,
    )
    outcome = pipeline.run(RunContext(process_id=args.process_id))

    if store is not None:
        store.save_run(outcome.context, success=outcome.success, cause=outcome.cause)

    summary = {
        "run_id": outcome.context.run_id,
        "success": outcome.success,
        "cause": outcome.cause,
        "report": outcome.report.to_dict() if outcome.report else None,
        "images": {
            "prefix": outcome.images.prefix,
            "copied": list(outcome.images.copied),
        }
        if outcome.images
        else None,
        "disabled_steps": list(outcome.disabled_steps),
        "integrity_ok": outcome.context.verify_integrity(),
    }
    if args.json:
        _print_json(summary)
    else:
        status = "OK" if outcome.success else f"FAILED ({outcome.cause})"
        print(f"Run {summary['run_id']}: {status}")
        if outcome.images:
            print(f"Image prefix: {outcome.images.prefix or '-'}  copied: {len(outcome.images.copied)}")
        if outcome.disabled_steps:
            print(f"Disabled steps: {', '.join(outcome.disabled_steps)}")
    return 0 if outcome.success else 1


def cmd_normalize_record(args: argparse.Namespace) -> int:
    """Normalize a record document and print the result (optionally saving it)."""

    config = _load_config_or_empty(args.config)
    record_store = XmlRecordStore(args.record)
    record, report = normalize_record(record_store.load(), config)
    if args.write:
        record_store.save(record)
    _print_json({"record": record.snapshot(), "report": report.to_dict(), "saved": bool(args.write)})
    return 0


def cmd_resolve_prefix(args: argparse.Namespace) -> int:
    prefix = resolve_image_prefix(args.unit_id)
    print(prefix)
    return 0 if prefix else 1


def cmd_match_images(args: argparse.Namespace) -> int:
    """Copy images for a prefix (or a unit id) from an import folder."""

    prefix = args.prefix if args.prefix is not None else resolve_image_prefix(args.unit_id or "")
    result = match_images(prefix, args.import_folder, args.target_folder)
    _print_json({"prefix": result.prefix, "found": result.found, "copied": list(result.copied)})
    return 0


def cmd_db_init(args: argparse.Namespace) -> int:
    SQLiteStepStatusStore(args.db, process_id=args.process_id).init_schema()
    print(f"initialized {args.db}")
    return 0


def cmd_db_add_step(args: argparse.Namespace) -> int:
    store = SQLiteStepStatusStore(args.db, process_id=args.process_id)
    for title in args.title:
        idx = store.add_step(title, args.status)
        print(f"{idx}\t{title}\t{args.status}")
    return 0


def cmd_db_list_steps(args: argparse.Namespace) -> int:
    rows = SQLiteStepStatusStore(args.db, process_id=args.process_id).list_steps()
    if args.json:
        _print_json(rows)
        return 0
    for r in rows:
        print(f"{r['idx']}\t{r['title']}\t{r['status']}")
    return 0


def cmd_db_list_runs(args: argparse.Namespace) -> int:
    rows = SQLiteStepStatusStore(args.db, process_id=args.process_id).list_runs(limit=args.limit)
    _print_json(rows)
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API.

    Binds to 127.0.0.1 by default.
    """

    try:
        import uvicorn
    except ImportError as e:
        print(f"error: uvicorn is required to serve the API: {e}", file=sys.stderr)
        return 2

    from kielcleanup.api.server import create_app

    app = create_app(config_path=args.config)
    uvicorn.run(app, host=args.host, port=int(args.port), log_level=args.log_level.lower())
    return 0


def _add_db_args(p: argparse.ArgumentParser, *, required: bool = True) -> None:
    p.add_argument("--db", required=required, help="SQLite step status database")
    p.add_argument("--process-id", default="default", help="Workflow process id")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kielcleanup", description="Archive record cleanup step")
    parser.add_argument(
        "--log-level",
        default=os.environ.get(ENV_LOG_LEVEL, "INFO"),
        help="Logging level (default: $KIELCLEANUP_LOG_LEVEL or INFO)",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    rp = sub.add_parser("run", help="Normalize a record, import its images and gate workflow steps")
    rp.add_argument("record", help="Record XML document")
    rp.add_argument("--config", required=True, help="Cleanup config (YAML/JSON)")
    rp.add_argument("--target-folder", default=None, help="Override images.target_folder")
    rp.add_argument("--json", action="store_true", help="Print a JSON summary")
    _add_db_args(rp, required=False)
    rp.set_defaults(func=cmd_run)

    np = sub.add_parser("normalize-record", help="Normalize a record document and print it")
    np.add_argument("record", help="Record XML document")
    np.add_argument("--config", default=None, help="Cleanup config (YAML/JSON)")
    np.add_argument("--write", action="store_true", help="Save the normalized record back")
    np.set_defaults(func=cmd_normalize_record)

    pp = sub.add_parser("resolve-prefix", help="Print the image filename prefix for a unit id")
    pp.add_argument("unit_id")
    pp.set_defaults(func=cmd_resolve_prefix)

    mp = sub.add_parser("match-images", help="Copy images matching a prefix from an import folder")
    src = mp.add_mutually_exclusive_group(required=True)
    src.add_argument("--prefix", default=None)
    src.add_argument("--unit-id", default=None)
    mp.add_argument("--import-folder", required=True)
    mp.add_argument("--target-folder", required=True)
    mp.set_defaults(func=cmd_match_images)

    di = sub.add_parser("db-init", help="Initialize a step status database")
    _add_db_args(di)
    di.set_defaults(func=cmd_db_init)

    da = sub.add_parser("db-add-step", help="Add workflow steps to a process")
    _add_db_args(da)
    da.add_argument("--title", action="append", required=True, help="Step title (repeatable)")
    da.add_argument("--status", default=StepStatus.OPEN.value, choices=[s.value for s in StepStatus])
    da.set_defaults(func=cmd_db_add_step)

    dl = sub.add_parser("db-list-steps", help="List workflow steps of a process")
    _add_db_args(dl)
    dl.add_argument("--json", action="store_true")
    dl.set_defaults(func=cmd_db_list_steps)

    dr = sub.add_parser("db-list-runs", help="List recorded cleanup runs of a process")
    _add_db_args(dr)
    dr.add_argument("--limit", type=int, default=20)
    dr.set_defaults(func=cmd_db_list_runs)

    sv = sub.add_parser("serve", help="Run the kielcleanup HTTP API")
    sv.add_argument("--host", default="127.0.0.1")
    sv.add_argument("--port", default="8080")
    sv.add_argument("--config", default=None, help="Cleanup config (default: $KIELCLEANUP_CONFIG)")
    sv.set_defaults(func=cmd_serve)

    return parser


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=str(args.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return int(args.func(args))
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except CleanupError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
