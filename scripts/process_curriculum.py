#!/usr/bin/env python3
"""Process every unprocessed curriculum document once.

Run with: uv run python scripts/process_curriculum.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.api.container import build_container
from src.core.config import get_settings
from src.core.errors import RagError
from src.core.logging_config import configure_logging


async def process_curriculum() -> int:
    """Run one ingestion pass and print its log. Returns the exit code."""
    settings = get_settings()
    configure_logging(settings)

    container = build_container(settings)
    if container.configuration_error:
        print(f"✗ {container.configuration_error.message}")
        return 1

    try:
        report = await container.require_ingestion().ingest_all()
    except RagError as e:
        print(f"✗ {e.message}")
        return 1
    finally:
        await container.aclose()

    for line in report.logs:
        print(line)

    if not report.success:
        print(f"\n✗ Processamento interrompido: {report.error}")
        return 1

    print("\n✓ Processamento concluído!")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(process_curriculum()))
