"""Selection constants and the immutable configuration that carries them."""

from __future__ import annotations

from dataclasses import dataclass

IGNORE_PATTERNS: tuple[str, ...] = (
    "node_modules/",
    "dist/",
    "build/",
    ".git/",
    "coverage/",
    ".next/",
    ".nuxt/",
    ".vscode/",
    ".idea/",
)

FILE_EXCLUDE_SUFFIXES: tuple[str, ...] = (
    ".min.js",
    ".min.css",
    ".map",
    ".d.ts",
)

MUST_INCLUDE_PATTERNS: tuple[str, ...] = (
    r"^README\.md$",
    r"^CHANGELOG",
    r"^LICENSE$",
    r"^docs/",
    r"^package\.json$",
    r"^package-lock\.json$",
    r"^npm-lock\.json$",
    r"^pnpm-lock\.yaml$",
    r"^yarn\.lock$",
    r"^requirements.*\.txt$",
    r"^pyproject\.toml$",
    r"^setup\.cfg$",
    r"^poetry\.lock$",
    r"^uv\.lock$",
    r"^Pipfile(\.lock)?$",
    r"^Cargo\.(toml|lock)$",
    r"^go\.(mod|sum)$",
    r"^Gemfile(\.lock)?$",
    r"^tsconfig.*\.json$",
    r"^\.eslintrc.*$",
    r"^\.prettierrc.*$",
    r"^Dockerfile",
    r"^Makefile$",
    r".*\.env\.example$",
    r"^\.gitignore$",
    r"^\.env$",
)

SOURCE_FILE_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".ts",
        ".tsx",
        ".js",
        ".jsx",
        ".py",
        ".go",
        ".rb",
        ".java",
        ".cs",
        ".md",
        ".json",
        ".toml",
        ".yaml",
        ".yml",
    }
)

COMMON_STOPWORDS: frozenset[str] = frozenset(
    {
        "the", "and", "for", "are", "with", "not", "you", "all", "can", "has",
        "her", "was", "one", "our", "out", "day", "get", "had", "his", "how",
        "man", "new", "now", "old", "see", "two", "way", "who", "boy", "did",
        "its", "let", "put", "say", "she", "too", "use",
    }
)  # fmt: skip

DEFAULT_BUDGET = 12_000
MIN_SELECTED_FILES = 8
TOKENS_PER_CHAR = 3.7
SOURCE_FILE_EXTENSION_BONUS = 0.2

AUTO_AGENT_ORDER: tuple[str, ...] = ("factory", "opencode")


@dataclass(frozen=True)
class SelectionConfig:
    """Every tunable of the selection pipeline.

    Instances are shared read-only between components. Use
    ``dataclasses.replace`` to derive a variant instead of mutating one.
    """

    ignore_patterns: tuple[str, ...] = IGNORE_PATTERNS
    exclude_suffixes: tuple[str, ...] = FILE_EXCLUDE_SUFFIXES
    must_include_patterns: tuple[str, ...] = MUST_INCLUDE_PATTERNS
    source_extensions: frozenset[str] = SOURCE_FILE_EXTENSIONS
    stopwords: frozenset[str] = COMMON_STOPWORDS
    min_keyword_length: int = 3

    filename_weight: float = 3.0
    content_weight: float = 2.0
    recency_weight: float = 1.0
    size_penalty_weight: float = 0.5
    type_bonus: float = SOURCE_FILE_EXTENSION_BONUS
    tokens_per_char: float = TOKENS_PER_CHAR

    min_selected_files: int = MIN_SELECTED_FILES
    default_budget: int = DEFAULT_BUDGET

    agent_order: tuple[str, ...] = AUTO_AGENT_ORDER
    git_timeout: float = 30.0
    agent_timeout: float = 300.0
    packer_timeout: float = 300.0

    def exclusion_patterns(self) -> list[str]:
        """Gitignore-style lines covering ignored directories and suffixes."""
        return [*self.ignore_patterns, *(f"*{s}" for s in self.exclude_suffixes)]


DEFAULT_CONFIG = SelectionConfig()
