#!/usr/bin/env python3
"""
Diagram Administration Utility

Lists, inspects, exports, imports and deletes diagrams stored by a running
diagram service. Export files are the same documents the editor exports, so
they can be re-imported as new diagrams or over an existing one.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from dualflow.config import DualFlowConfig
from dualflow.diagram.serializer import MalformedDocumentError, deserialize, export_document, import_document, serialize
from dualflow.persistence.base import DiagramGateway, PersistenceError
from dualflow.persistence.http import HttpDiagramGateway


async def list_diagrams(gateway: DiagramGateway) -> None:
    """Show stored diagrams, most recently updated first"""
    summaries = await gateway.list()
    if not summaries:
        print("No diagrams stored")
        return

    print(f"{len(summaries)} diagrams:")
    for summary in summaries:
        print(f"  {summary.id}  {summary.updated_at.isoformat()}  {summary.name}")


async def show_diagram(gateway: DiagramGateway, diagram_id: str) -> None:
    record = await gateway.read(diagram_id)
    print(json.dumps(record.to_wire(), indent=2))


async def export_diagram(gateway: DiagramGateway, diagram_id: str, output: Optional[Path]) -> None:
    """Write a stored diagram as an export document"""
    record = await gateway.read(diagram_id)
    loaded = deserialize(record.data)
    for warning in loaded.warnings:
        print(f"Warning: {warning.message}", file=sys.stderr)

    content = export_document(loaded.store, record.name)
    if output is None:
        print(content)
        return
    output.write_text(content, encoding="utf-8")
    print(f"Exported {record.name} to {output}")


async def import_diagram(gateway: DiagramGateway, path: Path, name: Optional[str], overwrite: Optional[str]) -> None:
    """Store an export document as a new diagram, or over an existing one"""
    result = import_document(path.read_bytes())
    for warning in result.warnings:
        print(f"Warning: {warning.message}", file=sys.stderr)

    name = name or result.name or path.stem
    data = serialize(result.store)
    if overwrite:
        await gateway.update(overwrite, name, data)
        print(f"Updated diagram {overwrite} ({name})")
    else:
        diagram_id = await gateway.create(name, data)
        print(f"Imported {name} as {diagram_id}")


async def delete_diagram(gateway: DiagramGateway, diagram_id: str) -> None:
    await gateway.delete(diagram_id)
    print(f"Deleted diagram {diagram_id}")


async def run(args: argparse.Namespace, gateway: DiagramGateway) -> None:
    try:
        if args.command == "list":
            await list_diagrams(gateway)
        elif args.command == "show":
            await show_diagram(gateway, args.id)
        elif args.command == "export":
            await export_diagram(gateway, args.id, args.output)
        elif args.command == "import":
            await import_diagram(gateway, args.path, args.name, args.overwrite)
        elif args.command == "delete":
            await delete_diagram(gateway, args.id)
    finally:
        await gateway.close()


def main(argv: List[str], gateway: Optional[DiagramGateway] = None) -> int:
    parser = argparse.ArgumentParser(description="Manage stored diagrams")
    parser.add_argument("--api-url", default=None, help="Diagram service base URL (default: DIAGRAM_API_URL)")

    subparsers = parser.add_subparsers(dest="command", help="Diagram commands")

    subparsers.add_parser("list", help="List stored diagrams")

    show_parser = subparsers.add_parser("show", help="Print a stored diagram")
    show_parser.add_argument("id", help="Diagram id")

    export_parser = subparsers.add_parser("export", help="Export a stored diagram")
    export_parser.add_argument("id", help="Diagram id")
    export_parser.add_argument("-o", "--output", type=Path, default=None, help="File to write (default: stdout)")

    import_parser = subparsers.add_parser("import", help="Import an export document")
    import_parser.add_argument("path", type=Path, help="Export document to import")
    import_parser.add_argument("--name", default=None, help="Diagram name (default: name in the file)")
    import_parser.add_argument("--overwrite", metavar="ID", default=None, help="Replace this diagram instead of creating one")

    delete_parser = subparsers.add_parser("delete", help="Delete a stored diagram")
    delete_parser.add_argument("id", help="Diagram id")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if gateway is None:
        gateway = HttpDiagramGateway(base_url=args.api_url, config=DualFlowConfig.from_env())

    try:
        asyncio.run(run(args, gateway))
        return 0
    except (PersistenceError, MalformedDocumentError, OSError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
