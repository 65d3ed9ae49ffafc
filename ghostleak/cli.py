"""
Ghostleak CLI: unified entrypoint.

Usage examples:
    ghostleak serve                 # passive proxy + control API
    ghostleak findings              # print recorded exposures
    ghostleak clear                 # forget findings and checked targets
    ghostleak check https://a.test  # one-off probe round for one URL
"""

import argparse
import asyncio
import json
import sys

from ghostleak.base.config import get_config, setup_logging
from ghostleak.errors import GhostleakError
from ghostleak.runtime import GhostleakRuntime


async def _serve(args) -> None:
    import uvicorn
    from ghostleak.ghost.proxy import GhostInterceptor
    from ghostleak.server.api import create_app

    config = get_config()
    runtime = GhostleakRuntime(config)
    await runtime.initialize()

    proxy = GhostInterceptor(
        runtime.adapter,
        host=config.proxy.listen_host,
        port=args.proxy_port if args.proxy_port is not None else config.proxy.listen_port,
    )
    await proxy.start()

    app = create_app(runtime, manage_runtime=False)
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=config.api.host,
        port=args.api_port if args.api_port is not None else config.api.port,
        log_config=None,
    ))
    print(f"👻 Ghost proxy on {proxy.host}:{proxy.port}, control API on {config.api.host}:{server.config.port}")
    try:
        await server.serve()
    finally:
        proxy.stop()
        await runtime.shutdown()


async def _findings(args) -> None:
    runtime = GhostleakRuntime()
    await runtime.initialize()
    try:
        items = runtime.get_found_items()
        if args.json:
            print(json.dumps(items, indent=2))
            return
        if not items:
            print("No exposures recorded.")
            return
        for item in items:
            print(f"{item['id']}  {item['type']:<4} {item['url']}  ({item['timestamp']})")
    finally:
        await runtime.shutdown()


async def _clear(args) -> None:
    runtime = GhostleakRuntime()
    await runtime.initialize()
    try:
        count = len(runtime.findings)
        await runtime.clear_all()
        print(f"🧹 Cleared {count} findings and all checked targets.")
    finally:
        await runtime.shutdown()


async def _check(args) -> int:
    runtime = GhostleakRuntime()
    await runtime.initialize()
    try:
        result = await runtime.dispatcher.dispatch_url(args.url)
        if result is None:
            print(f"Not a probeable http(s) URL: {args.url}")
            return 2
        if not result.accepted:
            print(f"{result.key}: skipped ({result.outcome.value})")
            return 0
        for finding in result.findings:
            print(f"🚨 {finding.kind.label} exposed: {finding.url}")
        if not result.findings:
            print(f"{result.key}: nothing exposed ({', '.join(k.label for k in result.probed) or 'no probes enabled'})")
        return 0
    finally:
        await runtime.shutdown()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Ghostleak passive exposure watcher")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the passive proxy and the control API")
    serve_parser.add_argument("--proxy-port", type=int, default=None)
    serve_parser.add_argument("--api-port", type=int, default=None)
    serve_parser.set_defaults(func=_serve)

    findings_parser = subparsers.add_parser("findings", help="List recorded exposures")
    findings_parser.add_argument("--json", action="store_true", help="Print raw JSON")
    findings_parser.set_defaults(func=_findings)

    clear_parser = subparsers.add_parser("clear", help="Clear findings and checked targets")
    clear_parser.set_defaults(func=_clear)

    check_parser = subparsers.add_parser("check", help="Run one probe round for a URL's origin")
    check_parser.add_argument("url", help="http(s) URL")
    check_parser.set_defaults(func=_check)

    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        setup_logging()
    except GhostleakError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1
    code = asyncio.run(args.func(args))
    return code or 0


if __name__ == "__main__":
    sys.exit(main())
