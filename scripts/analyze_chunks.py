#!/usr/bin/env python3
"""Report on the quality of the persisted curriculum chunks.

Run with: uv run python scripts/analyze_chunks.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import get_settings
from src.core.errors import PersistenceError
from src.db.database import create_engine, create_session_maker
from src.db.repository import ChunkRepository


def format_report(stats: list[dict]) -> list[str]:
    """Render per-document chunk statistics as printable lines."""
    total = sum(row["chunk_count"] for row in stats)
    short = sum(row["short_chunks"] for row in stats)
    long = sum(row["long_chunks"] for row in stats)

    lines = [f"Total de chunks: {total}", "", "Chunks por documento:"]
    for row in stats:
        lines.append(
            f"  {row['document_name']}: {row['chunk_count']} chunks "
            f"(min {row['min_length']}, média {float(row['avg_length']):.0f}, "
            f"max {row['max_length']} caracteres)"
        )

    lines += [
        "",
        "Análise de qualidade:",
        f"  Chunks muito pequenos (<100 caracteres): {short}",
        f"  Chunks muito grandes (>2000 caracteres): {long}",
    ]
    return lines


async def analyze_chunks() -> int:
    settings = get_settings()
    engine = create_engine(settings)
    repository = ChunkRepository(create_session_maker(engine), settings.match_function)

    try:
        stats = await repository.chunk_stats()
    except PersistenceError as e:
        print(f"✗ {e.message}")
        return 1
    finally:
        await engine.dispose()

    print("\n".join(format_report(stats)))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(analyze_chunks()))
