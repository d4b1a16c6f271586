from __future__ import annotations
import json
from pathlib import Path
from datetime import datetime, timezone

import typer
from rich import print
from rich.markup import escape

from .config import LOG_FILE
from .firmware.block import parse_container
from .firmware.errors import UF2Error
from .firmware.flash import FlashImage, describe_container
from .firmware.io import build_uf2_file, clear_uf2_file
from .firmware.map import USER_SCRIPT, USER_SCRIPT_BLOCKS
from .firmware.validate import validate_container

app = typer.Typer(add_completion=False, help="UF2: вшить пользовательский скрипт в образ прошивки.")

def _log_event(kind: str, payload: dict):
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    record = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "kind": kind,
        "payload": payload,
    }
    with open(LOG_FILE, "a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False) + "\n")

def _require(path: Path | None):
    if path is not None and not path.exists():
        print(f"[red]Файл не найден:[/] {path}")
        raise typer.Exit(code=2)

def _fail(kind: str, e: UF2Error):
    _log_event(kind, {"error": type(e).__name__, "message": str(e)})
    print(f"[red]Ошибка:[/] {escape(str(e))}")
    raise typer.Exit(code=1)

@app.command()
def build(
    script: Path = typer.Argument(..., help="Файл скрипта (.lua)"),
    out_file: Path = typer.Argument(..., help="Куда сохранить UF2"),
    base: Path = typer.Option(None, help="Базовый UF2 прошивки"),
    name: str = typer.Option(None, help="Имя скрипта (по умолчанию из строки '---имя')"),
):
    """
    Собрать UF2 со скриптом в регионе USERSCRIPT.
    Без --base получается UF2 только с регионом скрипта.
    """
    _require(script)
    _require(base)
    try:
        result = build_uf2_file(script, out_file, base, name)
    except UF2Error as e:
        _fail("build_error", e)
    _log_event("build", result)
    label = result["name"] or "-"
    print(f"[green]Готово:[/] {result['blocks']} блоков, скрипт {result['script_bytes']} байт ({label}) -> {result['out']}")

@app.command()
def clear(
    out_file: Path = typer.Argument(..., help="Куда сохранить UF2"),
    base: Path = typer.Option(None, help="Базовый UF2 прошивки"),
):
    """Собрать UF2, который стирает пользовательский скрипт."""
    _require(base)
    try:
        result = clear_uf2_file(out_file, base)
    except UF2Error as e:
        _fail("clear_error", e)
    _log_event("clear", result)
    print(f"[green]Готово:[/] {result['blocks']} блоков -> {result['out']}")

@app.command()
def info(image: Path = typer.Argument(..., help="UF2 для анализа")):
    """Показать сводку по UF2 и состояние региона скрипта."""
    _require(image)
    try:
        blocks = parse_container(image.read_bytes())
        summary = describe_container(blocks)
        summary["flash"] = FlashImage().apply(blocks).info()
    except UF2Error as e:
        _fail("info_error", e)
    print("[bold]Информация об образе:[/]")
    print(escape(json.dumps(summary, ensure_ascii=False, indent=2)))

@app.command()
def extract(
    image: Path = typer.Argument(..., help="UF2 со скриптом"),
    out_file: Path = typer.Argument(..., help="Куда сохранить скрипт"),
):
    """Достать пользовательский скрипт из UF2."""
    _require(image)
    try:
        embedded = FlashImage().apply(parse_container(image.read_bytes())).script()
    except UF2Error as e:
        _fail("extract_error", e)
    if embedded.status.kind != "user":
        print(f"[yellow]Пользовательского скрипта нет (статус: {embedded.status.kind}).[/]")
        raise typer.Exit(code=3)
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_bytes(embedded.script)
    _log_event("extract", {"image": str(image), "out": str(out_file), "name": embedded.name,
                           "bytes": len(embedded.script)})
    print(f"[green]Готово:[/] {len(embedded.script)} байт -> {out_file}")

@app.command()
def validate(
    image: Path = typer.Argument(..., help="UF2 для проверки"),
    region_blocks: int = typer.Option(USER_SCRIPT_BLOCKS, help="Ожидаемое число блоков в регионе скрипта"),
):
    """Проверить нумерацию, адреса и блоки региона скрипта."""
    _require(image)
    try:
        blocks = parse_container(image.read_bytes())
        validate_container(blocks, USER_SCRIPT.start, USER_SCRIPT.end, region_blocks)
    except UF2Error as e:
        _fail("validate_error", e)
    _log_event("validate", {"image": str(image), "blocks": len(blocks)})
    print(f"[bold green]OK:[/] {len(blocks)} блоков, регион скрипта в порядке.")


if __name__ == "__main__":
    app()
