import asyncio
import sys

from dispatcher import Dispatcher, InvalidConfiguration, validate
from worker import DEFAULT_TEMPLATE

NUM_WORKERS = 10
INTERVAL_MS = 25
REQUEST_TIMEOUT = None  # a hung request only stalls its own tick


def parse_args(argv):
    try:
        workers = int(argv[0]) if len(argv) > 0 else NUM_WORKERS
        interval_ms = int(argv[1]) if len(argv) > 1 else INTERVAL_MS
    except ValueError as e:
        raise InvalidConfiguration(f"expected integers [workers] [interval_ms]: {e}") from e
    validate(workers, interval_ms)
    return workers, interval_ms


async def request_loop(workers: int, interval_ms: int):
    """Send POSTs from every worker at a fixed rate until interrupted."""
    dispatcher = Dispatcher(DEFAULT_TEMPLATE, timeout=REQUEST_TIMEOUT)
    print(f"[Client] {workers} workers -> {DEFAULT_TEMPLATE.url} every {interval_ms}ms", file=sys.stderr)
    await dispatcher.run(workers, interval_ms)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    try:
        workers, interval_ms = parse_args(argv)
        asyncio.run(request_loop(workers, interval_ms))
    except InvalidConfiguration as e:
        print(f"[Client] invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
