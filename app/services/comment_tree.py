from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from app.schemas import CommentOut


def _thread_root(comment_id: int, parent_of: Dict[int, Optional[int]]) -> Optional[int]:
    """Id of the top-level comment a comment descends from, or None if the chain is broken."""
    seen = set()
    current = comment_id
    while True:
        if current in seen or current not in parent_of:
            return None
        seen.add(current)
        parent = parent_of[current]
        if parent is None:
            return current
        current = parent


def build_comment_tree(comments: Iterable[CommentOut]) -> List[CommentOut]:
    """
    Assemble flat comments into display threads.

    - Comments whose author can no longer be resolved are dropped, and a
      dropped top-level comment takes its replies with it.
    - Top-level comments are newest first.
    - Replies sit in their top-level comment's ``replies``, oldest first.
      Only one level is rendered, so a reply to a reply joins the list of
      the top-level comment it descends from.
    """
    comments = list(comments)
    parent_of = {c.id: c.parent_id for c in comments}
    visible = [c for c in comments if c.author is not None]

    top_level = [c for c in visible if c.parent_id is None]
    top_ids = {c.id for c in top_level}

    replies = defaultdict(list)
    for comment in visible:
        if comment.parent_id is None:
            continue
        root = _thread_root(comment.id, parent_of)
        if root in top_ids:
            replies[root].append(comment)

    top_level.sort(key=lambda c: (c.created_at, c.id), reverse=True)
    return [
        c.model_copy(update={
            "replies": sorted(replies[c.id], key=lambda r: (r.created_at, r.id)),
        })
        for c in top_level
    ]
