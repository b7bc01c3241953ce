"""Decide which repository files are worth embedding and clip their content."""
from repochat.config import settings

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({
    # Source
    "js", "jsx", "ts", "tsx", "py", "java", "c", "cpp", "cs", "go", "rb", "php", "swift",
    # Web
    "html", "css", "scss", "sass", "less",
    # Data
    "json", "yaml", "yml", "xml", "csv",
    # Docs
    "md", "txt", "rst", "doc", "docx",
    # Config
    "env", "ini", "conf", "config",
    # Shell
    "sh", "bash", "zsh", "fish",
    # Git
    "gitignore", "gitattributes",
})

MAX_FILE_SIZE = settings.INDEX_MAX_FILE_SIZE
MAX_CONTENT_BYTES = settings.INDEX_MAX_CONTENT_BYTES


def file_extension(file_name: str) -> str:
    """Lowercased text after the last dot; the whole name when there is none.

    ``.gitignore`` therefore yields ``gitignore``.
    """
    return file_name.rsplit(".", 1)[-1].lower()


def is_processable(file_name: str) -> bool:
    return file_extension(file_name) in SUPPORTED_EXTENSIONS


def is_within_size_limit(size: int | None, max_size: int = MAX_FILE_SIZE) -> bool:
    """Files at or above the ceiling are skipped before their content is fetched."""
    return size is not None and size < max_size


def detect_language(file_name: str) -> str:
    return file_extension(file_name)


def truncate(content: str, max_bytes: int = MAX_CONTENT_BYTES) -> str:
    """Keep whole leading lines of ``content`` within ``max_bytes`` UTF-8 bytes.

    Lines are appended while the accumulated text (newline-joined) still fits;
    the first line that would overflow ends the scan, so a line is never cut in
    half. Trailing whitespace is stripped. When the first line alone is too
    long the result is an empty string.
    """
    kept: list[str] = []
    used = 0
    for line in content.split("\n"):
        cost = len(line.encode("utf-8")) + (1 if kept else 0)
        if used + cost > max_bytes:
            break
        kept.append(line)
        used += cost
    return "\n".join(kept).rstrip()
