import json
import sys
from pathlib import Path

from loguru import logger

from calculator_mcp import CapabilityKind, build_registry
from calculator_mcp.schemagenerators import McpAdapter

logger.remove()
logger.add(sys.stderr, level="INFO")


if __name__ == "__main__":
    registry = build_registry()
    outdir = Path("schemas")
    outdir.mkdir(exist_ok=True)

    for kind in CapabilityKind:
        for schema in registry.list(kind):
            logger.info("=" * 20 + f"Schema for {kind.value} {schema.name}" + "=" * 20)
            if kind == CapabilityKind.PROMPT:
                fmt = McpAdapter.format_prompt_arguments(schema)
            else:
                fmt = McpAdapter.format_schema(schema)
            logger.info(json.dumps(fmt, indent=2))
            schema.to_file(outdir / f"{kind.value}-{schema.name}.json")

    logger.info(f"Declarations written to {outdir.resolve()}")
