"""CLI interface for the PDF pattern renamer."""

from __future__ import annotations

import logging
import os

import click

from pdf_pattern_renamer.config import RenamerConfig, load_config
from pdf_pattern_renamer.exceptions import RenamerError
from pdf_pattern_renamer.logging_setup import configure_logging
from pdf_pattern_renamer.models import RegexPattern, VisualPattern
from pdf_pattern_renamer.pattern_store import JsonFileStore, PatternStore


def _check_dependencies() -> list[str]:
    """Check for missing dependencies and return a list of issues."""
    issues: list[str] = []

    required_packages = {
        "fitz": "PyMuPDF",
        "PIL": "Pillow",
        "numpy": "numpy",
    }
    for module_name, pip_name in required_packages.items():
        try:
            __import__(module_name)
        except ImportError:
            issues.append(
                f"Python package '{pip_name}' is not installed. "
                f"Install it with: pip install {pip_name}"
            )

    return issues


def _require_dependencies() -> None:
    issues = _check_dependencies()
    if issues:
        for issue in issues:
            click.echo(issue, err=True)
        raise SystemExit(1)


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(1)


def _store(ctx: click.Context) -> PatternStore:
    config: RenamerConfig = ctx.obj["config"]
    return PatternStore(JsonFileStore(config.store_path), config.collection_key)


def _load_file(pdf_path: str):
    from pdf_pattern_renamer.file_collection import FileCollection

    if not os.path.exists(pdf_path):
        _fail(f"File not found: {pdf_path}")
    try:
        return FileCollection("files").add(pdf_path)
    except RenamerError as exc:
        _fail(f"{pdf_path}: {exc}")


def _select_region(config: RenamerConfig, named, page_number: int, zoom: float, box: tuple):
    """Replay a drag over *box* (display pixels at *zoom*) on the page.

    Returns the tracker; its ``selection`` is None when the box is too small.
    """
    from pdf_pattern_renamer.models import CanvasGeometry, PageViewport
    from pdf_pattern_renamer.pattern_replay import PatternReplayer
    from pdf_pattern_renamer.selection_tracker import PageContext, SelectionTracker
    from pdf_pattern_renamer.text_extractor import TextIntersectionEngine

    engine = TextIntersectionEngine(tolerance=config.tolerance)
    replayer = PatternReplayer(engine=engine)
    with replayer.open_document(named) as doc:
        page = doc.get_page(page_number)
        surface = page.render(zoom)
        context = PageContext(
            page_number=page_number,
            viewport=PageViewport(
                page_number=page_number,
                width=page.width * zoom,
                height=page.height * zoom,
                zoom=zoom,
            ),
            canvas=CanvasGeometry(
                pixel_width=surface.width,
                pixel_height=surface.height,
                display_width=surface.width,
                display_height=surface.height,
            ),
            runs=page.get_text_runs(1.0),
            page_height=page.height,
        )

    tracker = SelectionTracker(engine, min_size=config.min_selection_size)
    tracker.set_page(context)
    tracker.set_selection_mode(True)
    left, top, right, bottom = box
    tracker.pointer_down(left, top)
    tracker.pointer_move(right, bottom)
    tracker.pointer_up(right, bottom)
    return tracker


def _region_options(f):
    f = click.option("--zoom", default=1.0, type=float, show_default=True, help="Zoom level the coordinates were taken at.")(f)
    f = click.option("--bottom", required=True, type=float, help="Bottom edge in display pixels.")(f)
    f = click.option("--right", required=True, type=float, help="Right edge in display pixels.")(f)
    f = click.option("--top", required=True, type=float, help="Top edge in display pixels.")(f)
    f = click.option("--left", required=True, type=float, help="Left edge in display pixels.")(f)
    f = click.option("--page", default=1, type=int, show_default=True, help="1-based page number.")(f)
    return f


@click.group()
@click.option("--store", "store_path", default=None, type=click.Path(dir_okay=False), help="Pattern store file (default: ~/.pdf-renamer/patterns.json).")
@click.option("--tolerance", default=None, type=float, help="Boundary tolerance in PDF units.")
@click.pass_context
def cli(ctx: click.Context, store_path: str | None, tolerance: float | None) -> None:
    """PDF Pattern Renamer: rename PDFs from text found by region or regex."""
    try:
        config = load_config(store_path=store_path, tolerance=tolerance)
    except ValueError as exc:
        _fail(str(exc))
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=False))
@_region_options
@click.pass_context
def extract(ctx: click.Context, pdf_path: str, page: int, left: float, top: float, right: float, bottom: float, zoom: float) -> None:
    """Print the text found under a rectangle of a PDF page.

    PDF_PATH is the path to the PDF file.
    """
    _require_dependencies()
    config: RenamerConfig = ctx.obj["config"]
    named = _load_file(pdf_path)
    try:
        tracker = _select_region(config, named, page, zoom, (left, top, right, bottom))
    except RenamerError as exc:
        _fail(str(exc))
    selection = tracker.selection
    if selection is None:
        _fail(f"Selection must be at least {config.min_selection_size:g} px in both directions")
    if not selection.extracted_text:
        click.echo("No text found in selection", err=True)
        raise SystemExit(1)
    click.echo(selection.extracted_text)


@cli.group()
def patterns() -> None:
    """Manage saved extraction patterns."""


@patterns.command("list")
@click.pass_context
def list_patterns(ctx: click.Context) -> None:
    """List saved patterns."""
    items = _store(ctx).list()
    if not items:
        click.echo("No patterns saved yet")
        return
    for i, pattern in enumerate(items):
        if isinstance(pattern, VisualPattern):
            p = pattern.position
            detail = (
                f"VISUAL page {p.page} ({p.x:.1f}, {p.y:.1f}) "
                f"{p.width:.1f}x{p.height:.1f} zoom {p.zoom:g} sample={pattern.sample_text!r}"
            )
        else:
            detail = f"TEXT /{pattern.regex}/"
        click.echo(f"[{i}] {pattern.name}: {detail}")


@patterns.command("add-regex")
@click.argument("name")
@click.argument("regex")
@click.option("--description", default="", help="Free-text description.")
@click.pass_context
def add_regex(ctx: click.Context, name: str, regex: str, description: str) -> None:
    """Save a regex pattern; its first capture group becomes the name part."""
    try:
        pattern = _store(ctx).add_regex(name, regex, description)
    except RenamerError as exc:
        _fail(str(exc))
    click.echo(f"Pattern \"{pattern.name}\" saved successfully")


@patterns.command()
@click.argument("pdf_path", type=click.Path(exists=False))
@click.option("--name", required=True, help="Pattern name.")
@click.option("--description", default=None, help="Free-text description.")
@_region_options
@click.pass_context
def capture(ctx: click.Context, pdf_path: str, name: str, description: str | None, page: int, left: float, top: float, right: float, bottom: float, zoom: float) -> None:
    """Save a visual pattern from a rectangle on a sample PDF."""
    _require_dependencies()
    config: RenamerConfig = ctx.obj["config"]
    named = _load_file(pdf_path)
    try:
        tracker = _select_region(config, named, page, zoom, (left, top, right, bottom))
        if tracker.selection is None:
            _fail(f"Selection must be at least {config.min_selection_size:g} px in both directions")
        pattern = _store(ctx).save(tracker.selection, name, description)
        tracker.mark_saved()
    except RenamerError as exc:
        _fail(str(exc))
    click.echo(f"Pattern \"{pattern.name}\" saved: {pattern.sample_text!r}")


@patterns.command()
@click.argument("name", required=False)
@click.option("--index", type=int, default=None, help="Delete by list index instead of name.")
@click.pass_context
def delete(ctx: click.Context, name: str | None, index: int | None) -> None:
    """Delete a pattern (the most recent one when names repeat)."""
    store = _store(ctx)
    if index is not None:
        try:
            removed = store.delete(index)
        except IndexError as exc:
            _fail(str(exc))
    elif name:
        removed = store.delete_named(name)
        if removed is None:
            _fail(f"No pattern named {name!r}")
    else:
        _fail("Give a pattern NAME or --index")
    click.echo(f"Pattern \"{removed.name}\" deleted")


@patterns.command("export")
@click.argument("output_path", type=click.Path(dir_okay=False))
@click.pass_context
def export_patterns(ctx: click.Context, output_path: str) -> None:
    """Export all patterns to a JSON file."""
    count = _store(ctx).export_to(output_path)
    if not count:
        click.echo("No patterns to export", err=True)
    click.echo(f"Exported {count} pattern(s) to {output_path}")


@patterns.command("import")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--replace", is_flag=True, default=False, help="Replace all patterns instead of merging by name.")
@click.pass_context
def import_patterns(ctx: click.Context, input_path: str, replace: bool) -> None:
    """Import patterns from a JSON file."""
    try:
        count = _store(ctx).import_from(input_path, replace=replace)
    except RenamerError as exc:
        _fail(f"Error importing patterns: {exc}")
    click.echo(f"Imported {count} pattern(s)")


@patterns.command()
@click.argument("pdf_path", type=click.Path(exists=False))
@click.option("--add", "add_all", is_flag=True, default=False, help="Save every suggestion as a regex pattern.")
@click.pass_context
def suggest(ctx: click.Context, pdf_path: str, add_all: bool) -> None:
    """Suggest common regex patterns that match a PDF's text."""
    _require_dependencies()
    from pdf_pattern_renamer.pattern_replay import PatternReplayer
    from pdf_pattern_renamer.pattern_store import suggest_patterns

    config: RenamerConfig = ctx.obj["config"]
    named = _load_file(pdf_path)
    text = PatternReplayer(full_text_pages=config.full_text_pages).full_text(named)
    suggestions = suggest_patterns(text)
    if not suggestions:
        click.echo("No common patterns found in the PDF")
        return

    store = _store(ctx)
    for s in suggestions:
        examples = ", ".join(s["matches"])
        click.echo(f"{s['name']} /{s['regex']}/ ({s['total_matches']} match(es)): {examples}")
        if add_all:
            store.add_regex(s["name"], s["regex"], s["description"])
    if add_all:
        click.echo(f"Added {len(suggestions)} pattern(s)")


@patterns.command("test")
@click.argument("name")
@click.argument("pdf_path", type=click.Path(exists=False))
@click.pass_context
def test_pattern(ctx: click.Context, name: str, pdf_path: str) -> None:
    """Show what a saved pattern extracts from a PDF."""
    _require_dependencies()
    from pdf_pattern_renamer.pattern_replay import PatternReplayer
    from pdf_pattern_renamer.text_extractor import TextIntersectionEngine

    config: RenamerConfig = ctx.obj["config"]
    pattern = _store(ctx).find(name)
    if pattern is None:
        _fail(f"No pattern named {name!r}")
    named = _load_file(pdf_path)
    replayer = PatternReplayer(
        engine=TextIntersectionEngine(tolerance=config.tolerance),
        full_text_pages=config.full_text_pages,
    )

    try:
        if isinstance(pattern, RegexPattern):
            matches = replayer.find_matches(pattern, replayer.full_text(named))
            if not matches:
                click.echo(f"Pattern \"{name}\" did not match any text in the PDF")
                return
            for i, m in enumerate(matches, 1):
                groups = f" (Groups: {', '.join(g or '' for g in m['groups'])})" if m["groups"] else ""
                click.echo(f"Match {i}: \"{m['match']}\"{groups}")
        else:
            text = replayer.replay(pattern, named)
            click.echo(text or f"Pattern \"{name}\" did not extract any text")
    except RenamerError as exc:
        _fail(str(exc))


@cli.command()
@click.argument("pdf_paths", nargs=-1, required=True, type=click.Path(exists=False))
@click.option("-p", "--pattern", "pattern_names", multiple=True, required=True, help="Pattern name (repeat up to 3 times).")
@click.option("--separator", default=None, help="Separator between name parts.  [default: _]")
@click.option("--suffix", default="", help="Literal text appended to every name.")
@click.option("--dry-run", is_flag=True, default=False, help="Show the new names without renaming.")
@click.option("--chunk-size", default=None, type=int, help="Files processed between progress updates.  [default: 25]")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable detailed progress logging.")
@click.pass_context
def rename(ctx: click.Context, pdf_paths: tuple[str, ...], pattern_names: tuple[str, ...], separator: str | None, suffix: str, dry_run: bool, chunk_size: int | None, verbose: bool) -> None:
    """Rename PDF files using up to three saved patterns.

    PDF_PATHS are the files to rename.
    """
    _require_dependencies()

    from pdf_pattern_renamer.batch_renamer import BatchRenamer
    from pdf_pattern_renamer.file_collection import FileCollection
    from pdf_pattern_renamer.pattern_replay import PatternReplayer
    from pdf_pattern_renamer.text_extractor import TextIntersectionEngine

    base: RenamerConfig = ctx.obj["config"]
    try:
        config = load_config(
            store_path=base.store_path,
            tolerance=base.tolerance,
            separator=separator,
            chunk_size=chunk_size,
            verbose=verbose,
        )
    except ValueError as exc:
        _fail(str(exc))
    configure_logging(logging.DEBUG if config.verbose else None, to_stderr=config.verbose)

    if len(pattern_names) > 3:
        _fail("At most 3 patterns can be combined")
    store = _store(ctx)
    selected = []
    for name in pattern_names:
        pattern = store.find(name)
        if pattern is None:
            _fail(f"No pattern named {name!r}")
        selected.append(pattern)

    collection = FileCollection("bulk")
    _, open_errors = collection.add_many(pdf_paths)
    for err in open_errors:
        click.echo(f"Warning: could not open {err}", err=True)

    replayer = PatternReplayer(
        engine=TextIntersectionEngine(tolerance=config.tolerance),
        full_text_pages=config.full_text_pages,
    )
    renamer = BatchRenamer(replayer=replayer, chunk_size=config.chunk_size)
    original_names = [f.name for f in collection.files]
    plans, summary = renamer.run(
        collection.files,
        selected,
        separator=config.separator,
        literal_suffix=suffix,
        dry_run=dry_run,
    )

    for old_name, plan in zip(original_names, plans):
        if plan.skipped_reason:
            click.echo(f"{old_name} -> (skipped: {plan.skipped_reason})")
        else:
            click.echo(f"{old_name} -> {plan.target_path.name}")

    click.echo(
        f"\nRename summary{' (dry run)' if dry_run else ''}:\n"
        f"  Total files:     {summary.total + len(open_errors)}\n"
        f"  Succeeded:       {summary.succeeded}\n"
        f"  Failed:          {summary.failed + len(open_errors)}\n"
        f"  Skipped:         {summary.skipped}\n"
        f"  Aborted:         {summary.aborted}\n"
        f"  Processing time: {summary.processing_time_seconds:.2f}s",
        err=True,
    )
    if summary.failures:
        click.echo("Failures:", err=True)
        for failure in summary.failures:
            click.echo(f"  - {failure.path} [{failure.stage}]: {failure.message}", err=True)
    if summary.warnings:
        click.echo("Warnings:", err=True)
        for warning in summary.warnings:
            click.echo(f"  - {warning}", err=True)

    if summary.failed or open_errors:
        raise SystemExit(1)
