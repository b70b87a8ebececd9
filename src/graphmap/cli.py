from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from graphmap.settings import settings


def _configure_logging() -> None:
    import logging

    level = (settings.log_level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def build_client():
    from graphmap.client import GraphClient

    return GraphClient(settings=settings)


def _jsonable(value: Any) -> Any:
    from graphmap.models import Node, QueryResult, Relationship

    if isinstance(value, (Node, Relationship)):
        return value.as_dict()
    if isinstance(value, QueryResult):
        return value.model_dump()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _parse_param(text: str) -> tuple[str, Any]:
    key, sep, raw = text.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected key=value, got {text!r}")
    try:
        return key, json.loads(raw)
    except ValueError:
        return key, raw


async def _run(args: argparse.Namespace) -> Any:
    async with build_client() as db:
        return await args.op(db, args)


def _execute(args: argparse.Namespace) -> int:
    from graphmap.errors import GraphError

    _configure_logging()
    try:
        out = asyncio.run(_run(args))
    except GraphError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(json.dumps(_jsonable(out), indent=2, ensure_ascii=False))
    return 0


def cmd_version() -> int:
    from graphmap import __version__

    print(__version__)
    return 0


async def op_read(db, args: argparse.Namespace):
    ids = args.ids
    return await db.read(ids if len(ids) > 1 else ids[0])


async def op_query(db, args: argparse.Namespace):
    params = dict(args.param or [])
    if args.raw:
        return await db.query_raw(args.cypher, params)
    return await db.query(args.cypher, params)


async def op_relationships(db, args: argparse.Namespace):
    return await db.relationships(args.id, args.direction, args.type or None)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="graphmap")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version").set_defaults(func=lambda _a: cmd_version())

    read = sub.add_parser("read", help="Read nodes by id")
    read.add_argument("ids", nargs="+", type=int)
    read.set_defaults(func=_execute, op=op_read)

    query = sub.add_parser("query", help="Run a query and print its rows")
    query.add_argument("cypher")
    query.add_argument("--param", action="append", type=_parse_param, help="key=value (value parsed as JSON)")
    query.add_argument("--raw", action="store_true", help="Print columns/data without rebuilding entities")
    query.set_defaults(func=_execute, op=op_query)

    rels = sub.add_parser("relationships", help="List the relationships of a node")
    rels.add_argument("id", type=int)
    rels.add_argument("--direction", choices=["in", "out", "all"], default="all")
    rels.add_argument("--type", action="append")
    rels.set_defaults(func=_execute, op=op_relationships)

    return p


def app() -> None:
    parser = build_parser()
    args = parser.parse_args()
    rc = args.func(args)
    raise SystemExit(rc)


if __name__ == "__main__":
    app()
