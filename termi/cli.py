from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.text import Text

from . import __version__, runner
from .config import LANGUAGES, Config, ConfigError, load_config, save_config
from .graph import DEFAULT_MAX_TURNS, run_line_mode
from .log_utils import setup_logging
from .providers import build_provider
from .state import Canceled, Completed, Copied, DialogueState, Failed
from .tui import run_tui
from .view import render, texts

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

EXIT_OK = 0
EXIT_ERROR = 1
# The dialogue itself failed (backend, clipboard or handoff). Kept apart from
# the exit statuses a run command commonly returns.
EXIT_FAILED = 70


def _turns(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if n < 0:
        raise argparse.ArgumentTypeError("must be 0 or greater")
    return n


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="termi", description="Turn a natural-language request into a shell command")
    p.add_argument("query", nargs="*", help="What you want to do, in plain words")
    p.add_argument("--once", action="store_true", help="Line-by-line dialogue instead of the interactive screen")
    p.add_argument("-y", "--yes", action="store_true", help="With --once: run the command without asking")
    p.add_argument("--print", dest="print_only", action="store_true", help="Print the chosen command instead of running it")
    p.add_argument("--max-turns", type=_turns, help="Backend exchanges allowed per dialogue (0 = unbounded)")
    p.add_argument("--config", type=Path, help="Config file (default ~/.config/termi/config.json)")
    p.add_argument("--save-config", action="store_true", help="Write the effective config file and exit")
    p.add_argument("--lang", choices=LANGUAGES, help="Language of messages and questions")
    p.add_argument("--log-file", type=Path, help="Append debug logs to this file")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging (stderr in --once mode)")
    p.add_argument("--version", action="version", version=f"termi {__version__}")
    return p.parse_args(argv)


def _max_turns(args: argparse.Namespace, cfg: Config, line_mode: bool) -> Optional[int]:
    if args.max_turns is not None:
        return args.max_turns or None
    if cfg.max_turns is not None:
        return cfg.max_turns
    return DEFAULT_MAX_TURNS if line_mode else None


def finish(state: DialogueState, *, lang: str = "zh", print_only: bool = False) -> int:
    """Report the outcome and hand a completed command to the runner."""
    t = texts(lang)
    if isinstance(state, Completed):
        if print_only:
            print(state.command)
            return EXIT_OK
        console.print(f"\n{t['running'].format(command=state.command)}\n", markup=False, highlight=False)
        try:
            return runner.run(state.command)
        except OSError as exc:
            err_console.print(t["run_failed"].format(error=exc), markup=False)
            return EXIT_FAILED
    if isinstance(state, Copied):
        console.print(Text.from_ansi(render(state, lang=lang)))
        return EXIT_OK
    if isinstance(state, Failed):
        err_console.print(Text.from_ansi(render(state, lang=lang)))
        return EXIT_FAILED
    if isinstance(state, Canceled):
        console.print(Text.from_ansi(render(state, lang=lang)))
        return EXIT_OK
    logger.error("dialogue ended in non-terminal state %r", state)
    return EXIT_ERROR


def run(argv: Optional[List[str]] = None) -> int:
    # Load .env from the working directory
    load_dotenv(find_dotenv(usecwd=True))
    args = parse_args(argv)

    try:
        cfg = load_config(args.config)
        if args.lang:
            cfg.language = args.lang
        if args.max_turns is not None:
            cfg.max_turns = args.max_turns or None
    except ConfigError as exc:
        err_console.print(f"Config error: {exc}", markup=False)
        return EXIT_ERROR

    if args.save_config:
        try:
            path = save_config(cfg, args.config)
        except ConfigError as exc:
            err_console.print(f"Config error: {exc}", markup=False)
            return EXIT_ERROR
        console.print(f"Saved {path}", markup=False)
        return EXIT_OK

    lang = cfg.language
    query = " ".join(args.query).strip()
    if not query:
        err_console.print(texts(lang)["usage"], markup=False)
        return EXIT_ERROR

    line_mode = args.once or not sys.stdin.isatty()
    log_file = args.log_file or (Path(cfg.log_file).expanduser() if cfg.log_file else None)
    setup_logging(log_file, verbose=args.verbose and line_mode)

    try:
        provider = build_provider(cfg)
    except ConfigError as exc:
        err_console.print(f"Config error: {exc}", markup=False)
        return EXIT_ERROR
    max_turns = _max_turns(args, cfg, line_mode)
    logger.info("provider=%s enabled=%s line_mode=%s max_turns=%s", provider.name(), provider.enabled(), line_mode, max_turns)

    try:
        if line_mode:
            state = asyncio.run(run_line_mode(
                provider,
                query,
                max_turns=max_turns,
                auto_confirm=args.yes,
                console=err_console,
            ))
        else:
            state = asyncio.run(run_tui(provider, query, max_turns=max_turns, lang=lang))
    except KeyboardInterrupt:
        state = Canceled()
    return finish(state, lang=lang, print_only=args.print_only)


def main() -> None:
    sys.exit(run())
