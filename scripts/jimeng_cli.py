"""Command-line examples for the Jimeng client.

Run with:
    python3 scripts/jimeng_cli.py image "a red balloon" --width 1024 --height 1024
    python3 scripts/jimeng_cli.py i2i "futuristic mecha" ./hero.png https://example.com/pose.jpg
    python3 scripts/jimeng_cli.py t2v "a panda playing in a bamboo forest"
    python3 scripts/jimeng_cli.py i2v https://example.com/image.jpg --prompt "gentle motion"
    python3 scripts/jimeng_cli.py check <task_id> --kind video-image-to-video

Credentials come from JIMENG_ACCESS_KEY / JIMENG_SECRET_KEY (or a .env file).
Results are printed to stdout as JSON; logs go to stderr.
"""

import argparse
import asyncio
import json
import sys
import time

from jimeng_client import (
    ConfigurationError,
    ImageTaskParams,
    ImageToVideoParams,
    PollOptions,
    TaskKind,
    TextToVideoParams,
    ValidationError,
)
from jimeng_client.config import configure_logging, get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Jimeng image/video generation examples")
    parser.add_argument("--region", default=None, help="Region override, e.g. cn-north-1")
    parser.add_argument("--debug", action="store_true", help="Verbose request logging")
    sub = parser.add_subparsers(dest="command", required=True)

    image = sub.add_parser("image", help="Text-to-image")
    image.add_argument("prompt")
    image.add_argument("--model", default=None)
    image.add_argument("--width", type=int)
    image.add_argument("--height", type=int)

    i2i = sub.add_parser("i2i", help="Image-to-image from URLs or local paths")
    i2i.add_argument("prompt")
    i2i.add_argument("references", nargs="+")
    i2i.add_argument("--model", default=None)
    i2i.add_argument("--width", type=int)
    i2i.add_argument("--height", type=int)
    i2i.add_argument("--size", type=int)
    i2i.add_argument("--no-return-url", dest="return_url", action="store_false")

    t2v = sub.add_parser("t2v", help="Text-to-video")
    t2v.add_argument("prompt")
    t2v.add_argument("--model", default=None)
    t2v.add_argument("--submit-only", action="store_true", help="Print the task_id and exit")

    i2v = sub.add_parser("i2v", help="Image-to-video")
    i2v.add_argument("images", nargs="+")
    i2v.add_argument("--prompt", default=None)
    i2v.add_argument("--model", default=None)
    i2v.add_argument("--aspect-ratio", default="16:9")

    check = sub.add_parser("check", help="Query an existing task once")
    check.add_argument("task_id")
    check.add_argument("--kind", choices=[k.value for k in TaskKind], default=TaskKind.TEXT_TO_VIDEO.value)
    check.add_argument("--model", default=None)
    return parser


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.debug:
        settings = settings.model_copy(update={"JIMENG_DEBUG": True})
    client = settings.create_client()

    start = time.monotonic()
    if args.command == "image":
        result = await client.generate_image(ImageTaskParams(
            prompt=args.prompt, req_key=args.model, width=args.width, height=args.height,
            region=args.region,
        ))
    elif args.command == "i2i":
        result = await client.generate_image(ImageTaskParams(
            prompt=args.prompt, req_key=args.model, image_urls=args.references,
            width=args.width, height=args.height, size=args.size,
            return_url=args.return_url, force_single=False, region=args.region,
        ))
    elif args.command == "t2v":
        params = TextToVideoParams(prompt=args.prompt, req_key=args.model, region=args.region)
        if args.submit_only:
            task_id = await client.submit_video_task(params)
            print(json.dumps({"task_id": task_id}))
            return 0
        result = await client.generate_video(params)
    elif args.command == "i2v":
        result = await client.generate_i2v_video(ImageToVideoParams(
            image_urls=args.images, prompt=args.prompt, req_key=args.model,
            aspect_ratio=args.aspect_ratio, region=args.region,
        ))
    else:
        task = await client.get_task_result(
            args.task_id, TaskKind(args.kind), args.model,
            PollOptions(region=args.region, return_url=True),
        )
        print(json.dumps({
            "task_id": task.task_id,
            "status": task.status,
            "urls": task.payload.urls,
            "base64_count": len(task.payload.base64_blobs),
            "message": task.message,
        }, ensure_ascii=False, indent=2))
        return 0

    print(f"Elapsed: {time.monotonic() - start:.1f}s", file=sys.stderr)
    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    if not result.success and result.task_id:
        print(
            f"Resume with: python3 scripts/jimeng_cli.py check {result.task_id}",
            file=sys.stderr,
        )
    return 0 if result.success else 1


def main() -> int:
    args = build_parser().parse_args()
    configure_logging(args.debug or get_settings().JIMENG_DEBUG)
    try:
        return asyncio.run(run(args))
    except (ConfigurationError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
