NON_CODE_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".webp",
    ".bmp",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".otf",
    ".mp4",
    ".mp3",
    ".wav",
    ".ogg",
    ".zip",
    ".tar",
    ".gz",
    ".rar",
    ".7z",
    ".lock",  # e.g. package-lock.json, Pipfile.lock
    ".map",  # source maps
    ".min.js",
    ".db",
    ".sqlite",
    ".pyc",
    ".class",
    ".jar",
    ".so",
    ".dll",
    ".exe",
    ".bin",
    ".json",  # no comment syntax
    ".md",
    ".txt",
    ".csv",
}

# Directories that never hold hand-written source worth scanning.
IGNORED_DIRECTORIES = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
    ".tox",
    ".mypy_cache",
    ".pytest_cache",
    "dist",
    "build",
}


def is_code_file(file_name: str) -> bool:
    return not any(file_name.lower().endswith(ext) for ext in NON_CODE_EXTENSIONS)


def looks_binary(data: bytes) -> bool:
    """Return True if the leading bytes of a file contain a NUL byte."""
    return b"\x00" in data[:8192]
