"""
Run a Listener from the environment and log every message it emits.

    python -m slack_agents            # all channels
    SLACK_LISTEN_CHANNEL=#general python -m slack_agents

Press Ctrl+C to stop.
"""

import asyncio
import signal

from .agents import ListenerAgent
from .config import load_environment
from .utils import SlackAgentError, get_logger, setup_logging


async def main() -> int:
    environ = load_environment()
    setup_logging(
        environ.get("LOG_LEVEL"),
        json_logging=environ.get("JSON_LOGGING", "false").lower() == "true",
    )
    logger = get_logger("slack_agents")

    def log_event(event: dict) -> None:
        logger.info(
            f"{event['channel']} {event.get('user', '?')}: {event.get('text', '')[:100]}",
            extra={"extra_fields": {"ts": event["ts"]}},
        )

    listener = ListenerAgent(
        {"channel": environ.get("SLACK_LISTEN_CHANNEL", "")},
        output=log_event,
        environ=environ,
    )

    try:
        await listener.start()
    except SlackAgentError as e:
        logger.critical(str(e))
        return 1

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    closed = asyncio.create_task(listener.wait_closed())
    stopping = asyncio.create_task(stop.wait())
    done, _ = await asyncio.wait({closed, stopping}, return_when=asyncio.FIRST_COMPLETED)

    failure = None
    if closed in done:
        try:
            closed.result()
        except SlackAgentError as e:
            failure = e
    else:
        closed.cancel()
    stopping.cancel()

    logger.info("Shutting down...")
    await listener.stop()

    if failure is not None:
        logger.critical(str(failure))
        return 1
    return 0


def run() -> None:
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    run()
