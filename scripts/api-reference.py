# /// script
# requires-python = ">=3.11"
# dependencies = ["ruamel.yaml"]
# ///
"""Generate API reference pages for dae_stepper and wire them into mkdocs."""

import ast
from pathlib import Path

from ruamel.yaml import YAML  # type: ignore[import-not-found]

PACKAGE = "dae_stepper"
NAV_SECTION = "API Reference"


def module_name(file_path: Path, src_root: Path) -> str:
    """Convert a module file path to its dotted import name.

    Args:
        file_path: Path to the Python file.
        src_root: Root source directory.

    Returns:
        The fully qualified module name.
    """
    parts = list(file_path.relative_to(src_root).with_suffix("").parts)
    if parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts)


def public_modules(package_dir: Path) -> list[Path]:
    """Return the package's public module files, sorted by name."""
    return [
        path
        for path in sorted(package_dir.glob("*.py"))
        if not path.name.startswith("_")
    ]


def module_summary(file_path: Path) -> str:
    """Return the first line of a module's docstring, or an empty string."""
    tree = ast.parse(file_path.read_text(encoding="utf-8"))
    doc = ast.get_docstring(tree) or ""
    return doc.splitlines()[0] if doc else ""


def write_module_page(file_path: Path, src_root: Path, output_dir: Path) -> str:
    """Write the mkdocstrings page for one module.

    Args:
        file_path: Module file.
        src_root: Root source directory.
        output_dir: Directory receiving the page.

    Returns:
        The page name (module basename).
    """
    name = module_name(file_path, src_root)
    page = name.rsplit(".", 1)[-1]
    lines = [f"# {page.replace('_', ' ').title()}", ""]
    summary = module_summary(file_path)
    if summary:
        lines.extend((summary, ""))
    lines.extend((f"::: {name}", ""))
    (output_dir / f"{page}.md").write_text("\n".join(lines), encoding="utf-8")
    print(f"Generated: {output_dir / f'{page}.md'}")
    return page


def update_mkdocs_nav(mkdocs_path: Path, pages: list[str]) -> None:
    """Replace the API Reference entries of the mkdocs navigation.

    ruamel.yaml round-trips the file so comments and ordering survive.

    Args:
        mkdocs_path: Path to mkdocs.yml.
        pages: Generated page names.
    """
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.width = 4096
    yaml.explicit_start = True
    yaml.indent(mapping=2, sequence=4, offset=2)
    with mkdocs_path.open("r", encoding="utf-8") as f:
        config = yaml.load(f)

    nav = config.get("nav", [])
    section = next(
        (item for item in nav if isinstance(item, dict) and NAV_SECTION in item),
        None,
    )
    if section is None:
        print(f"Warning: no '{NAV_SECTION}' section in {mkdocs_path.name}")
        return

    section[NAV_SECTION] = [
        {page.replace("_", " ").title(): f"api-reference/{page}.md"}
        for page in sorted(pages)
    ]
    with mkdocs_path.open("w", encoding="utf-8") as f:
        yaml.dump(config, f)
    print(f"Updated {mkdocs_path.name} navigation with {len(pages)} pages")


def main() -> None:
    """Regenerate docs/api-reference and the mkdocs navigation."""
    repo_root = Path(__file__).parent.parent
    src_root = repo_root / "src"
    output_dir = repo_root / "docs" / "api-reference"

    output_dir.mkdir(parents=True, exist_ok=True)
    for stale in output_dir.glob("*.md"):
        stale.unlink()

    pages = [
        write_module_page(path, src_root, output_dir)
        for path in public_modules(src_root / PACKAGE)
    ]
    update_mkdocs_nav(repo_root / "mkdocs.yml", pages)


if __name__ == "__main__":
    main()
