"""gesture-dtw CLI.

Usage:
    gesture-dtw replay      — Push a recording through the engine
    gesture-dtw capture     — Store a recording as a new template
    gesture-dtw templates   — List stored templates
    gesture-dtw compare     — DTW distance between two stored templates
    gesture-dtw benchmark   — Time matching passes on synthetic data
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import typer
import yaml

from gesture_dtw.config import EngineConfig
from gesture_dtw.errors import GestureError

app = typer.Typer(
    name="gesture-dtw",
    help="🤚 Dynamic gesture recognition with DTW template matching.",
    add_completion=False,
)


@app.callback()
def main_options(
    log_level: str = typer.Option("warning", help="Log level"),
):
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def _load_config(config: Optional[str]) -> EngineConfig:
    if config is None:
        return EngineConfig()
    try:
        return EngineConfig.from_yaml(_require(config, "Config"))
    except (ValueError, TypeError, yaml.YAMLError) as e:
        _fail(e)


def _require(path: str, what: str) -> Path:
    p = Path(path)
    if not p.exists():
        typer.echo(f"❌ {what} not found: {path}", err=True)
        raise typer.Exit(1)
    return p


def _fail(e: Exception):
    typer.echo(f"❌ {e}", err=True)
    raise typer.Exit(1)


def _load_store(path: str):
    from gesture_dtw.templates import TemplateStore

    try:
        return TemplateStore.load(_require(path, "Template file"))
    except (GestureError, ValueError, KeyError, TypeError) as e:
        _fail(e)


def _load_recording(path: str):
    from gesture_dtw.recorder import FramePlayer

    try:
        return FramePlayer.load(_require(path, "Recording"))
    except (GestureError, ValueError, KeyError, TypeError) as e:
        _fail(e)


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Recording file (.json/.npz)"),
    templates: str = typer.Option(..., "--templates", "-t", help="Template file"),
    config: Optional[str] = typer.Option(None, help="Engine config YAML"),
    speed: float = typer.Option(0.0, help="Playback speed multiplier (0 = as fast as possible)"),
    show_unknown: bool = typer.Option(False, help="Print rejected matching passes too"),
):
    """Replay a recorded session through the recognition engine."""
    from gesture_dtw.engine import GestureRecognitionEngine

    player = _load_recording(recording)
    store = _load_store(templates)
    try:
        engine = GestureRecognitionEngine(_load_config(config), store=store)
    except (GestureError, ValueError) as e:
        _fail(e)

    typer.echo(f"▶️  Replaying {Path(recording).name} ({player.frame_count} frames) against {len(store)} templates")

    frames = player.play_realtime(speed=speed) if speed > 0 else player.play()
    matches = 0
    for frame in frames:
        try:
            result = engine.push(frame.vector)
        except GestureError as e:
            _fail(e)
        if result is None:
            continue
        if result.matched:
            matches += 1
            typer.echo(f"   🤚 {frame.timestamp:7.2f}s  {result.name} (distance: {result.distance:.3f})")
        elif show_unknown:
            typer.echo(f"   ·  {frame.timestamp:7.2f}s  {result.name} (closest: {result.best_name}, {result.distance:.3f})")

    stats = engine.stats
    typer.echo(f"\n✅ Replay complete. {matches} gestures recognised, {stats.frames_dropped} frames dropped.")


@app.command()
def capture(
    recording: str = typer.Argument(..., help="Recording file (.json/.npz)"),
    name: str = typer.Argument(..., help="Template name"),
    templates: str = typer.Option(..., "--templates", "-t", help="Template file (created if missing)"),
    config: Optional[str] = typer.Option(None, help="Engine config YAML"),
    overwrite: bool = typer.Option(False, help="Replace an existing template with this name"),
):
    """Store a recorded session as a new gesture template."""
    from gesture_dtw.engine import GestureRecognitionEngine

    player = _load_recording(recording)
    cfg = _load_config(config)
    cfg.allow_overwrite = overwrite

    template_path = Path(templates)
    store = _load_store(templates) if template_path.exists() else None
    try:
        engine = GestureRecognitionEngine(cfg, store=store)
        engine.start_capture(name)
        for frame in player.play():
            engine.push(frame.vector)
        template = engine.stop_capture()
    except (GestureError, ValueError) as e:
        _fail(e)

    engine.store.save(template_path)
    typer.echo(f"💾 Stored '{template.name}' ({template.length} frames) in {templates}")


@app.command("templates")
def list_templates(
    path: str = typer.Argument(..., help="Template file"),
):
    """List the templates in a template file."""
    store = _load_store(path)
    typer.echo(f"📂 {len(store)} templates (D={store.dimensionality})")
    for template in store:
        typer.echo(f"   {template.name:25s} {template.length:4d} frames")


@app.command()
def compare(
    path: str = typer.Argument(..., help="Template file"),
    first: str = typer.Argument(..., help="Live-side template name"),
    second: str = typer.Argument(..., help="Reference template name"),
    window: Optional[float] = typer.Option(None, help="Sakoe-Chiba band width"),
):
    """Print the DTW distance between two stored templates."""
    from gesture_dtw.dtw import dtw_distance

    store = _load_store(path)
    missing = [n for n in (first, second) if n not in store]
    if missing:
        typer.echo(f"❌ Unknown template(s): {', '.join(missing)}", err=True)
        raise typer.Exit(1)

    dist = dtw_distance(store.get(first).sequence, store.get(second).sequence, window=window)
    typer.echo(f"{first} → {second}: {dist:.4f}")


@app.command()
def benchmark(
    templates: int = typer.Option(10, help="Number of synthetic templates"),
    template_frames: int = typer.Option(20, help="Frames per template"),
    iterations: int = typer.Option(200, help="Matching passes to time"),
    config: Optional[str] = typer.Option(None, help="Engine config YAML"),
):
    """Time matching passes: cost grows with templates × buffer × template length."""
    import numpy as np
    from gesture_dtw.dtw import DtwMatcher
    from gesture_dtw.templates import GestureTemplate, TemplateStore

    cfg = _load_config(config)
    rng = np.random.default_rng(42)

    store = TemplateStore(dimensionality=cfg.dimensionality)
    for i in range(templates):
        store.add(GestureTemplate(
            name=f"synthetic_{i}",
            sequence=rng.random((template_frames, cfg.dimensionality)),
        ))

    live = rng.random((cfg.buffer_capacity, cfg.dimensionality))
    matcher = DtwMatcher(window=cfg.dtw_window)

    typer.echo(
        f"⚡ Benchmark: {templates} templates × {template_frames} frames, "
        f"buffer {cfg.buffer_capacity}, D={cfg.dimensionality}, {iterations} passes"
    )

    times = []
    for _ in range(iterations):
        t0 = time.perf_counter()
        matcher.best_match(live, store)
        times.append(time.perf_counter() - t0)

    avg_ms = sum(times) / len(times) * 1000
    p95_ms = sorted(times)[int(len(times) * 0.95)] * 1000
    cells = templates * template_frames * cfg.buffer_capacity

    typer.echo(f"\n📊 Results:")
    typer.echo(f"   Average pass:  {avg_ms:.2f} ms")
    typer.echo(f"   P95 pass:      {p95_ms:.2f} ms")
    typer.echo(f"   DTW cells:     {cells} per pass ({avg_ms * 1e6 / cells:.1f} ns/cell)")


def main():
    app()


if __name__ == "__main__":
    main()
