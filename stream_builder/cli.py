from __future__ import annotations
import argparse
import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, List, Optional

from tools.llm_client import LLMClient, stream_endpoint

from .export import write_files
from .generate import build_messages, replay_text
from .session import ERRORED, Snapshot, StreamController


@dataclass
class StreamOptions:
    prompt: str = ""
    dest: Optional[Path] = None
    if_exists: str = "skip"            # "skip" | "overwrite"
    provider: Optional[str] = None     # "groq" | "openai" | "anthropic"; None -> LLM_PROVIDER
    from_file: Optional[Path] = None   # replay saved output instead of calling a model
    endpoint: Optional[str] = None     # plain-text generation endpoint instead of an LLM
    chunk_size: int = 64
    verbose: bool = False


def _source(opts: StreamOptions) -> AsyncIterator[str]:
    if opts.from_file:
        text = Path(opts.from_file).read_text(encoding="utf-8", errors="ignore")
        return replay_text(text, chunk_size=opts.chunk_size)
    if opts.endpoint:
        return stream_endpoint(opts.endpoint, opts.prompt)
    client = LLMClient(provider=opts.provider)
    return client.stream_chat(build_messages(opts.prompt))


def _progress_printer(out: Callable[[str], None]) -> Callable[[Snapshot], None]:
    last: List[tuple] = [()]

    def on_snapshot(snap: Snapshot) -> None:
        key = (snap.session_status, tuple(f.path for f in snap.files))
        if key == last[0]:
            return
        last[0] = key
        listing = ", ".join(f.path for f in snap.files) or "-"
        out(f"[stream] {snap.session_status:<9} files={len(snap.files)} [{listing}]")

    return on_snapshot


async def run_stream(opts: StreamOptions, out: Callable[[str], None] = print) -> Snapshot:
    controller = StreamController(
        on_snapshot=_progress_printer(out),
        logger=out if opts.verbose else None,
    )
    return await controller.run(_source(opts), prompt=opts.prompt)


def main(argv=None) -> int:
    ap = argparse.ArgumentParser("stream-builder")
    ap.add_argument("prompt", nargs="?", default="", help="What to build, in plain words")
    ap.add_argument("--dest", default=None, help="Write the finished files into this folder")
    ap.add_argument("--mode", choices=["skip", "overwrite"], default="skip",
                    help="If a file exists: skip or overwrite")
    ap.add_argument("--provider", choices=["groq", "openai", "anthropic"], default=None,
                    help="LLM provider (defaults to LLM_PROVIDER)")
    ap.add_argument("--from-file", default=None, help="Replay saved model output instead of calling a model")
    ap.add_argument("--endpoint", default=None, help="Stream from a plain-text generation endpoint")
    ap.add_argument("--chunk-size", type=int, default=64, help="Replay chunk size (with --from-file)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Print pipeline log lines")

    args = ap.parse_args(argv)
    if not args.prompt and not args.from_file:
        ap.error("a prompt is required unless --from-file is given")

    opts = StreamOptions(
        prompt=args.prompt,
        dest=Path(args.dest) if args.dest else None,
        if_exists=args.mode,
        provider=args.provider,
        from_file=Path(args.from_file) if args.from_file else None,
        endpoint=args.endpoint,
        chunk_size=args.chunk_size,
        verbose=args.verbose,
    )

    try:
        snap = asyncio.run(run_stream(opts))
    except (ValueError, RuntimeError) as e:
        # configuration problems (provider, API key) surface before streaming starts
        print(f"Cannot start generation: {e}", file=sys.stderr)
        return 2

    if snap.session_status == ERRORED:
        err = snap.file("error.txt")
        print(f"\nFAILED ❌\n{err.content if err else 'unknown error'}", file=sys.stderr)
        return 1

    print(f"\nDONE ✅  files={len(snap.files)}")
    for d in snap.directories_ordered:
        print(f"  {'/' if d == 'root' else d + '/'}")
        for f in snap.files_by_directory[d]:
            print(f"    · {f.name}  ({len(f.content)} chars)")

    if opts.dest:
        result = write_files(snap.files, opts.dest, if_exists=opts.if_exists)
        print(f"\nRoot: {result.root_dir}")
        print(f"Created ({len(result.created)}):")
        for p in result.created:
            print(f"  + {p.relative_to(result.root_dir)}")
        if result.skipped:
            print(f"Skipped ({len(result.skipped)}):")
            for p in result.skipped:
                print(f"  · {p.relative_to(result.root_dir)}")
        if result.warnings:
            print("\nWarnings:")
            for w in result.warnings:
                print(f"  ! {w}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
