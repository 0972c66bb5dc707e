"""Table reconstruction — token classification and the strategy chain.

Public API
----------
- :class:`TokenKind` / :func:`classify_token` — one tag per token
- :func:`grid_table_strategy` — strategy A, direct grid mapping
- :func:`semantic_table_strategy` — strategy B, name/grade proximity
- :func:`coarse_grid_strategy` — strategy C, coarse lattice fallback
- :func:`reconstruct_tables` — first-success selection over the chain
"""

from .classify import TokenKind, classify_text, classify_token, is_table_like_row
from .strategies import (
    STRATEGY_CHAIN,
    coarse_grid_strategy,
    grid_table_strategy,
    reconstruct_tables,
    semantic_table_strategy,
)

__all__ = [
    "TokenKind",
    "classify_text",
    "classify_token",
    "is_table_like_row",
    "STRATEGY_CHAIN",
    "coarse_grid_strategy",
    "grid_table_strategy",
    "reconstruct_tables",
    "semantic_table_strategy",
]
