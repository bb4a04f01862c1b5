"""Path and pattern helpers for dot-delimited note paths."""

from typing import List, Optional

from wcmatch import glob

from notetree.config import config

# Separator of logical note paths ("foo.bar.baz")
PATH_SEPARATOR = "."
# Separator used in schema patterns ("foo/bar/*")
PATTERN_SEPARATOR = "/"


def path_segments(node_path: str) -> List[str]:
    """Split a logical path into segments. The empty path has no segments."""
    if not node_path:
        return []
    return node_path.split(PATH_SEPARATOR)


def basename(node_path: str, rm_extension: bool = False, extension: Optional[str] = None) -> str:
    """Last segment of a logical path.

    The note extension is only removed when ``rm_extension`` is set, so
    ``basename("foo.bar.md")`` is ``"md"`` while
    ``basename("foo.bar.md", rm_extension=True)`` is ``"bar"``.

    Args:
        node_path: Dot-delimited path, optionally with an extension.
        rm_extension: Strip a trailing extension before splitting.
        extension: Extension to strip. Defaults to ``config.note_extension``.
    """
    if rm_extension:
        ext = extension or config.note_extension
        if node_path.endswith(ext) and len(node_path) > len(ext):
            node_path = node_path[: -len(ext)]
    return node_path.split(PATH_SEPARATOR)[-1]


def dir_name(node_path: str) -> str:
    """Parent path: every segment but the last (``"a.b.c"`` -> ``"a.b"``)."""
    return PATH_SEPARATOR.join(node_path.split(PATH_SEPARATOR)[:-1])


def domain_name(node_path: str) -> str:
    """First segment of a logical path."""
    return node_path.split(PATH_SEPARATOR)[0]


def path_up_to(node_path: str, num_components: int) -> str:
    """Prefix of a logical path holding at most ``num_components`` segments."""
    return PATH_SEPARATOR.join(node_path.split(PATH_SEPARATOR)[:num_components])


def default_title(fname: str) -> str:
    """Title derived from a path: last segment, extension removed, capitalized.

    ``default_title("foo.bar")`` is ``"Bar"``.
    """
    return basename(fname, rm_extension=True).capitalize()


def to_pattern_path(node_path: str) -> str:
    """Rewrite a dot path to the ``/`` separated form used by schema patterns."""
    return node_path.replace(PATH_SEPARATOR, PATTERN_SEPARATOR)


def is_nested_path(ancestor_path: str, node_path: str) -> bool:
    """True when ``node_path`` lies strictly below ``ancestor_path``.

    Every non-empty path lies below the empty (root) path.
    """
    if not ancestor_path:
        return bool(node_path)
    return node_path.startswith(ancestor_path + PATH_SEPARATOR)


# =============================================================================
# Glob patterns
# =============================================================================

# Whole-path matching with "**" spanning segments and "{a,b}" alternatives
GLOB_FLAGS = glob.GLOBSTAR | glob.BRACE | glob.FORCEUNIX


def glob_match(path: str, pattern: str) -> bool:
    """True when the whole ``/`` separated path matches the glob pattern.

    Supported syntax:
        ``*``      any run of characters within one segment
        ``**``     (as a whole segment) any number of segments
        ``?``      one character within a segment
        ``[...]``  character class, ``[!...]`` negates
        ``{a,b}``  alternatives
    """
    return glob.globmatch(path, pattern, flags=GLOB_FLAGS)
