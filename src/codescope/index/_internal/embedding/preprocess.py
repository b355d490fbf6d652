"""Code normalization applied to chunk text before it is embedded."""

from __future__ import annotations

import re

from codescope.core.languages import CommentStyle, comment_style

_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_SLASH_LINE_COMMENT = re.compile(r"//[^\n]*")
_HASH_LINE_COMMENT = re.compile(r"#[^\n]*")
_WHITESPACE = re.compile(r"\s+")


def preprocess_code(text: str, language: str) -> str:
    """Strip comments for the language's family and collapse whitespace.

    Python docstrings are kept: they are string literals, not comments, and
    usually carry the most descriptive text in a chunk.
    """
    if not text:
        return ""
    style = comment_style(language)
    if style is CommentStyle.C_LIKE:
        text = _BLOCK_COMMENT.sub(" ", text)
        text = _SLASH_LINE_COMMENT.sub("", text)
    elif style is CommentStyle.HASH:
        text = _HASH_LINE_COMMENT.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()
