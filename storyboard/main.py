"""Entry point for storyboard: headless generation or the web UI server."""
from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path

if sys.platform == 'win32':
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

BACKEND_PORT = 8000


def _setup_logging() -> None:
    log_dir = Path.home() / ".storyboard"
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(log_dir / "storyboard.log"),
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _prompt_for_key() -> str | None:
    if not sys.stdin.isatty():
        return None
    return await asyncio.to_thread(getpass.getpass, "Gemini API key: ")


async def run_headless(
    script_path: Path,
    out_dir: Path | None = None,
    image_size: str | None = None,
    aspect_ratio: str | None = None,
) -> int:
    """Parse a script, generate every scene image and save them. Returns an exit code."""
    from .access import AccessGate, AccessState, ConfigCredentials
    from .config import Config
    from .errors import AccessError, ParseError
    from .export import export_image, read_script
    from .models import AspectRatio, GenerationSettings, ImageSize
    from .orchestrator import GenerationOrchestrator
    from .store import SceneStore
    from .utils.gemini_client import GeminiService

    config = Config.load()
    settings = config.default_settings()
    settings = GenerationSettings(
        image_size=ImageSize(image_size) if image_size else settings.image_size,
        aspect_ratio=AspectRatio(aspect_ratio) if aspect_ratio else settings.aspect_ratio,
    )

    gate = AccessGate(ConfigCredentials(config, select_key=_prompt_for_key), verify_selection=True)
    if await gate.check() is AccessState.LOCKED:
        print("🔒 No GEMINI_API_KEY found.")
        try:
            await gate.select()
        except AccessError as e:
            print(f"Error: {e}")
            return 1
        if not gate.is_unlocked:
            print("Error: a Gemini API key is required.")
            return 1

    store = SceneStore()
    orchestrator = GenerationOrchestrator(
        store,
        GeminiService(config),
        gate,
        settings=settings,
        max_workers=config.max_workers,
        progress_cb=print,
    )

    try:
        script = read_script(script_path)
        await orchestrator.parse(script)
    except (ParseError, OSError) as e:
        print(f"Error: {e}")
        return 1

    summary = await orchestrator.generate_all()

    target = out_dir or config.output_dir
    for position, scene in enumerate(store.scenes, start=1):
        if scene.image_url:
            path = export_image(scene, position, target)
            print(f"  Saved {path}")
        else:
            print(f"  ⚠ Scene {position}: {scene.error or 'no image'}")

    if summary.failed:
        print(f"\n⚠️  {len(summary.failed)} scene(s) failed to generate")
        return 1
    print(f"\n✅ Storyboard saved to: {target}")
    return 0


def serve(host: str = "127.0.0.1", port: int = BACKEND_PORT, reload: bool = False) -> None:
    import uvicorn

    uvicorn.run("webui.backend.app:app", host=host, port=port, reload=reload)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="storyboard", description="AI storyboard generator")
    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Generate a storyboard from a script file")
    run_p.add_argument("script", type=Path, help="Path to a UTF-8 screenplay")
    run_p.add_argument("--out", type=Path, default=None, help="Output directory for images")
    run_p.add_argument("--size", choices=["1K", "2K", "4K"], default=None)
    run_p.add_argument("--aspect-ratio", choices=["16:9", "9:16", "1:1", "4:3", "3:4"], default=None)

    serve_p = sub.add_parser("serve", help="Start the web UI backend")
    serve_p.add_argument("--host", default="127.0.0.1")
    serve_p.add_argument("--port", type=int, default=BACKEND_PORT)
    serve_p.add_argument("--reload", action="store_true")

    args = parser.parse_args(argv)
    _setup_logging()

    if args.command == "serve":
        serve(args.host, args.port, args.reload)
        return

    code = asyncio.run(run_headless(args.script, args.out, args.size, args.aspect_ratio))
    sys.exit(code)


if __name__ == "__main__":
    main()
