"""
Command-line entry point for the NFS-e importer.
"""
import sys
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger

from .core import JobOrchestrator, OCREngine, PageExtractor
from .exceptions import NoRecordsToExport
from .models import (
    EnvironmentSettings,
    JsonPreferencesStore,
    PreferencesManager,
    ProgressUpdate,
    Settings,
)
from .utils import ExcelReporter, ExportService, FileHandler

DEFAULT_CONFIG = Path("config") / "settings.toml"

app = typer.Typer(
    name="nfse-importer",
    help="Importador de NFS-e: extração em lote, OCR fallback, TXT + XLSX",
    add_completion=False,
)
schema_app = typer.Typer(help="Layout do TXT (ordem das colunas)")
app.add_typer(schema_app, name="schema")


def setup_logging(log_level: str = "INFO", logs_dir: Path = Path("logs")):
    """Configure logging"""
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
    )
    logs_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(logs_dir / "app_{time:YYYY-MM-DD}.log"),
        rotation="1 day",
        retention="7 days",
        level=log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}"
    )


def build_orchestrator(settings: Settings,
                       env_settings: EnvironmentSettings,
                       preferences: PreferencesManager) -> JobOrchestrator:
    """Wire the pipeline components from configuration"""
    ocr_engine = OCREngine(
        tesseract_cmd=env_settings.tesseract_cmd,
        language=settings.ocr.language,
        enable_preprocessing=settings.ocr.enable_preprocessing,
    )
    page_extractor = PageExtractor(
        ocr_engine=ocr_engine,
        min_text_length=settings.ocr.min_text_length,
        raster_scale=settings.ocr.raster_scale,
        ocr_timeout_seconds=settings.ocr.timeout_seconds,
        page_limit=settings.processing.pdf_page_limit,
    )
    return JobOrchestrator(
        page_extractor=page_extractor,
        preferences=preferences,
        max_concurrent_files=settings.processing.max_concurrent_files,
        max_files=settings.processing.max_files,
    )


def _load_preferences(env_settings: EnvironmentSettings) -> PreferencesManager:
    return PreferencesManager(JsonPreferencesStore(Path(env_settings.preferences_path)))


def _print_progress(update: ProgressUpdate):
    typer.echo(f"  [{update.status.value:<11}] {update.progress:3d}%  {update.filename}")


@app.command()
def run(
    files: List[Path] = typer.Argument(..., help="PDFs ou ZIPs com PDFs"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Diretório de saída"),
    locale: Optional[str] = typer.Option(None, "--locale", help="Separador decimal do TXT: pt ou en"),
    config: Path = typer.Option(DEFAULT_CONFIG, "--config", help="Arquivo settings.toml"),
):
    """Processa os arquivos e exporta TXT + XLSX."""
    env_settings = EnvironmentSettings()
    setup_logging(env_settings.log_level, Path(env_settings.logs_dir))
    settings = Settings.load_from_toml(config)
    preferences = _load_preferences(env_settings)
    # --locale applies to this export only; the saved preference is untouched
    export_preferences = preferences.current
    if locale:
        try:
            export_preferences = export_preferences.with_locale(locale)
        except ValueError as e:
            typer.secho(str(e), fg=typer.colors.RED)
            raise typer.Exit(code=1)

    orchestrator = build_orchestrator(settings, env_settings, preferences)
    submission = orchestrator.submit(FileHandler.prepare_files_for_processing(files))
    if submission.message:
        typer.secho(submission.message, fg=typer.colors.YELLOW)

    summary = orchestrator.run(progress_callback=_print_progress)
    for outcome in summary.outcomes:
        line = f"{outcome.status.value:<11} {outcome.filename}"
        if outcome.error_message:
            line += f" - {outcome.error_message}"
        typer.echo(line)

    records = orchestrator.records
    with_errors = sum(1 for r in records if r.errors)
    typer.echo(f"{len(records)} registro(s), {with_errors} com erros de validação")

    exporter = ExportService(
        output_dir=output or Path(env_settings.output_dir),
        excel_reporter=ExcelReporter(),
        separator=settings.export.separator,
    )
    try:
        artifacts = exporter.export(records, export_preferences)
    except NoRecordsToExport as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"TXT:  {artifacts.txt_path}")
    typer.echo(f"XLSX: {artifacts.xlsx_path}")


@schema_app.command("show")
def schema_show():
    """Mostra a ordem atual das colunas do TXT."""
    preferences = _load_preferences(EnvironmentSettings())
    for index, field in enumerate(preferences.schema_fields):
        typer.echo(f"{index:2d}. {field}")
    typer.echo(f"Formato decimal: {preferences.decimal_locale}")


@schema_app.command("move")
def schema_move(source: int, target: int):
    """Move a coluna da posição SOURCE para TARGET."""
    preferences = _load_preferences(EnvironmentSettings())
    try:
        preferences.move_field(source, target)
    except IndexError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    schema_show()


@schema_app.command("set")
def schema_set(fields: List[str]):
    """Define a lista (e a ordem) das colunas do TXT."""
    preferences = _load_preferences(EnvironmentSettings())
    try:
        preferences.set_schema(fields)
    except ValueError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    schema_show()


@schema_app.command("reset")
def schema_reset():
    """Volta ao layout padrão."""
    _load_preferences(EnvironmentSettings()).reset_schema()
    schema_show()


@app.command("locale")
def set_locale(value: str = typer.Argument(..., help="pt (,) ou en (.)")):
    """Define o separador decimal do TXT."""
    preferences = _load_preferences(EnvironmentSettings())
    try:
        preferences.set_locale(value)
    except ValueError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Formato decimal: {preferences.decimal_locale}")


def main():
    app()


if __name__ == "__main__":
    main()
