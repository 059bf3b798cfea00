"""
Maturity Engine — Main Entry Point

Print a program's maturity tree (CLI):
    python -m maturity_engine.main [program_id]

Run as an API server (for the frontend):
    python -m maturity_engine.main --serve
    # or: uvicorn maturity_engine.api:app --reload --port 8000

Or import and run programmatically:
    from maturity_engine.main import run
    tree = run(1)
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from maturity_engine.config import get_settings
from maturity_engine.models.schemas import TreeNode
from maturity_engine.persistence.demo_data import DEMO_PROGRAM_ID
from maturity_engine.services.maturity_service import MaturityService
from maturity_engine.utils.logger import setup_logging


async def _load_tree(program_id: int) -> Optional[TreeNode]:
    service = MaturityService()
    try:
        outcome = await service.load_essential(program_id)
        if not outcome.ok:
            logging.getLogger(__name__).error(f"Could not load program {program_id}: {outcome.error}")
            return None
        return service.build_tree(program_id)
    finally:
        await service.close()


def run(program_id: int = DEMO_PROGRAM_ID) -> Optional[TreeNode]:
    """Load one program, score it and log the navigation tree."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("  MATURITY SCORING ENGINE")
    logger.info(
        f"  Mode: {'MOCK' if settings.mock_mode else 'MongoDB'} | "
        f"Started: {datetime.now(timezone.utc).isoformat()}"
    )
    logger.info("=" * 60)

    tree = asyncio.run(_load_tree(program_id))
    if tree is not None:
        _print_summary(tree)
    return tree


def _print_summary(tree: TreeNode) -> None:
    """Print a human-readable view of the scored tree."""
    logger = logging.getLogger(__name__)

    logger.info("")
    logger.info("-" * 60)
    logger.info(f"  {tree.label}: {_format_score(tree)}")
    logger.info("-" * 60)
    for diagnostic in tree.children:
        logger.info(f"  {diagnostic.label}: {_format_score(diagnostic)}")
        for control in diagnostic.children:
            logger.info(f"    {control.label}: {_format_score(control)}")
    logger.info("")


def _format_score(node: TreeNode) -> str:
    if not node.has_data:
        return node.maturity_label
    return f"{node.score:.2f} ({node.maturity_label})"


def serve(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Start the FastAPI server (for frontend communication)."""
    import uvicorn

    setup_logging(get_settings().log_level)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run("maturity_engine.api:app", host=host, port=port, reload=True)


if __name__ == "__main__":
    if "--serve" in sys.argv:
        serve()
    else:
        program_arg = int(sys.argv[1]) if len(sys.argv) > 1 else DEMO_PROGRAM_ID
        run(program_arg)
