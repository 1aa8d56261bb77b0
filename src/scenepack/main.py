"""Main application entry point for scenepack."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Dict, Optional

from rich.console import Console
from rich.table import Table
from tqdm import tqdm

from scenepack.models.pipeline import BatchResult, LoadingType, ProgressUpdate
from scenepack.models.scene import Scene
from scenepack.services.pipeline import PipelineOrchestrator
from scenepack.services.project_store import ProjectStore
from scenepack.utils.config import load_config, validate_config
from scenepack.utils.logging import new_run_id, run_context, setup_logging

logger = logging.getLogger(__name__)


class ProgressBarCallback:
    """Progress bar callback for orchestrator progress updates."""

    def __init__(self):
        self.progress_bars: Dict[LoadingType, tqdm] = {}

    async def __call__(self, update: ProgressUpdate) -> None:
        bar = self.progress_bars.get(update.loading_type)
        if bar is None:
            bar = tqdm(
                total=100,
                desc=update.loading_type.value.title(),
                unit="%",
                leave=True,
            )
            self.progress_bars[update.loading_type] = bar

        bar.n = update.percent
        bar.set_postfix_str(update.message)
        bar.refresh()

    def close(self):
        """Close all progress bars."""
        for bar in self.progress_bars.values():
            bar.n = bar.total
            bar.refresh()
            bar.close()
        self.progress_bars.clear()


class ScenePackApp:
    """Runs one production from script files to archive."""

    def __init__(self, args: argparse.Namespace):
        self.args = args
        self.console = Console()
        self.orchestrator: Optional[PipelineOrchestrator] = None

    def display_plan(self, scenes: list[Scene]) -> None:
        table = Table(title=f"Plan: {len(scenes)} scenes", show_header=True, padding=(0, 1))
        table.add_column("#", justify="right")
        table.add_column("Part")
        table.add_column("Script")
        table.add_column("Visual prompt")

        for scene in scenes:
            table.add_row(
                str(scene.index),
                "intro" if scene.is_intro_segment else "body",
                scene.original_text,
                scene.visual_prompt or "[dim](empty)[/dim]",
            )
        self.console.print(table)

    def display_batch(self, label: str, result: BatchResult) -> None:
        status = "[yellow]cancelled[/yellow]" if result.cancelled else "[green]done[/green]"
        self.console.print(
            f"{label}: {len(result.succeeded)}/{len(result.attempted)} succeeded ({status})"
        )
        if result.last_error:
            self.console.print(f"[red]Last error:[/red] {result.last_error}")

    def _signal_handler(self, signum, _):
        """Cancel running batches on Ctrl-C. In-flight calls still finish."""
        logger.info(f"Received signal {signum}, cancelling batch...")
        if self.orchestrator is None or not self.orchestrator.cancel():
            raise KeyboardInterrupt

    async def run(self) -> int:
        config = load_config()
        if self.args.output:
            config.output_dir = str(Path(self.args.output).resolve())
        for problem in validate_config(config):
            logger.warning(f"Configuration: {problem}")

        intro = Path(self.args.intro).read_text(encoding="utf-8") if self.args.intro else ""
        body = Path(self.args.body).read_text(encoding="utf-8") if self.args.body else ""

        project_store = ProjectStore(config.db_path)
        await project_store.connect()
        progress_callback = ProgressBarCallback()
        self.orchestrator = PipelineOrchestrator.from_config(
            config, project_store, on_progress=progress_callback
        )
        orchestrator = self.orchestrator

        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            scenes = await orchestrator.plan(intro, body)
            progress_callback.close()
            self.display_plan(scenes)
            orchestrator.confirm_plan()

            if self.args.images:
                result = await orchestrator.generate_all_images()
                progress_callback.close()
                self.display_batch("Images", result)
            if self.args.upscale:
                result = await orchestrator.upscale_all_images()
                progress_callback.close()
                self.display_batch("Upscale", result)
            if self.args.tts:
                result = await orchestrator.generate_all_tts()
                progress_callback.close()
                self.display_batch("Narration", result)
            if self.args.zip:
                archive_path = await orchestrator.package()
                progress_callback.close()
                self.console.print(f"[green]Archive written:[/green] {archive_path}")

        except Exception as e:
            progress_callback.close()
            logger.error(f"Production failed: {e}")
            self.console.print(f"[red]Error:[/red] {orchestrator.last_error or e}")
            return 1
        finally:
            await orchestrator.close()
            await project_store.close()

        if orchestrator.last_error:
            self.console.print(f"[red]Last error:[/red] {orchestrator.last_error}")
        return 0


def serve(host: str, port: int) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("scenepack.api.server:app", host=host, port=port, log_level="info")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="scenepack - turn a script into scene images, narration and a media pack",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  scenepack --intro hook.txt --body body.txt --images --zip
  scenepack --body body.txt --images --tts --upscale --output ./packs
  scenepack serve --port 8000
        """,
    )
    parser.add_argument("--intro", help="Intro / hook script file (2 sentences per scene)")
    parser.add_argument("--body", help="Body script file (up to 4 sentences per scene)")
    parser.add_argument("--images", action="store_true", help="Generate all scene images")
    parser.add_argument("--tts", action="store_true", help="Generate narration for all scenes")
    parser.add_argument("--upscale", action="store_true", help="Upscale all scene images")
    parser.add_argument("--zip", action="store_true", help="Write a zip of images and audio")
    parser.add_argument("--output", help="Output folder for the archive")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command")
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    setup_logging(log_level=args.log_level)

    if args.command == "serve":
        serve(args.host, args.port)
        return

    if not args.intro and not args.body:
        parser.error("at least one of --intro or --body is required")

    app = ScenePackApp(args)
    with run_context(new_run_id("cli")):
        try:
            exit_code = asyncio.run(app.run())
        except KeyboardInterrupt:
            logger.info("Application interrupted by user")
            exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
