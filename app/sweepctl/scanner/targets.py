"""Artifact names, project markers and search roots.

These tables drive the candidate scanner and search-root discovery.
"""

# Build outputs and dependency directories that can be regenerated
DEFAULT_TARGETS: tuple[str, ...] = (
    "node_modules",
    "target",
    "build",
    "dist",
    "venv",
    ".venv",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    ".tox",
    ".nox",
    ".gradle",
    ".next",
    ".nuxt",
    ".turbo",
    ".parcel-cache",
    ".dart_tool",
    ".build",
    "DerivedData",
    "Pods",
    "coverage",
    ".angular",
    ".svelte-kit",
    ".expo",
    ".terraform",
    "bin",
    "vendor",
    "obj",
    ".zig-cache",
    "zig-out",
    ".cxx",
    ".stack-work",
)

# Files or directories whose presence marks a project root.
# Entries containing '*' are matched as globs.
PROJECT_INDICATORS: tuple[str, ...] = (
    "package.json",
    "Cargo.toml",
    "go.mod",
    "pyproject.toml",
    "requirements.txt",
    "setup.py",
    "pom.xml",
    "build.gradle",
    "build.gradle.kts",
    "Gemfile",
    "composer.json",
    "pubspec.yaml",
    "Package.swift",
    "Podfile",
    "mix.exs",
    "deno.json",
    "CMakeLists.txt",
    "Makefile",
    "*.csproj",
    "*.sln",
    ".git",
)

# Markers of a workspace root; these win over plain project markers
MONOREPO_INDICATORS: tuple[str, ...] = (
    "lerna.json",
    "pnpm-workspace.yaml",
    "nx.json",
    "rush.json",
    "turbo.json",
)

DEFAULT_SEARCH_ROOTS: tuple[str, ...] = (
    "~/Projects",
    "~/GitHub",
    "~/dev",
    "~/www",
    "~/code",
    "~/Development",
    "~/workspace",
    "~/src",
    "~/repos",
)

# Never descended into while scanning
PRUNE_DIRS: frozenset[str] = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "Library",
        ".Trash",
        "Applications",
        ".cache",
    }
)

# Home-level folders that are never project containers
NON_CONTAINER_DIRS: frozenset[str] = frozenset(
    {
        "Library",
        "Applications",
        "Movies",
        "Music",
        "Pictures",
        "Public",
    }
)

DOTNET_PROJECT_GLOBS: tuple[str, ...] = ("*.csproj", "*.fsproj", "*.vbproj")
