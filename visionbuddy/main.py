"""
Vision Buddy Application Entry Point

Runs a terminal session of the navigation assistant. A still image stands
in for the camera and typed lines stand in for recognized speech.

Usage:
    visionbuddy --image hallway.jpg
    visionbuddy --config /path/to/config.yaml --log-level DEBUG
    visionbuddy --offline --image hallway.jpg   # in-memory registry, local voice
    visionbuddy --dry-run                       # Validate config and exit

Session commands:
    scan                 Describe hazards and guidance ahead
    pin                  Save the last described scene
    cancel               Clear the navigation target
    lang <name>          Switch language, e.g. "lang French"
    places               List verified saved places
    go <n>               Navigate to saved place n (or a node id)
    status               Show the current state
    quit                 End the session
    anything else        Treated as a spoken request

Entry Points:
    - CLI: `visionbuddy` command (via pyproject.toml)
    - Direct: `python -m visionbuddy.main`
"""

from __future__ import annotations

import argparse
import asyncio
import re
import signal
import sys
from typing import TYPE_CHECKING, Optional, Set

from services.registry import InMemoryRegistry, SnowflakeRegistryClient
from services.vision import GeminiVisionClient
from visionbuddy import __version__
from visionbuddy.config import VisionBuddyConfig, load_config
from visionbuddy.console import ImageFileFrameSource, StdinReader, TypedSpeechRecognizer
from visionbuddy.exceptions import ConfigurationError, VisionBuddyError
from visionbuddy.logging_config import get_logger, setup_logging
from visionbuddy.orchestrator import EventType, InteractionOrchestrator, OrchestratorEvent
from visionbuddy.speech_output import SpeechOutput
from voice import AudioCues, AudioPlayer, ElevenLabsTTS, LocalSpeechService

if TYPE_CHECKING:
    from types import FrameType

__all__ = ["main", "async_main", "create_parser", "build_orchestrator"]

logger = get_logger(__name__)

GO_COMMAND = re.compile(r"go (\d+|node_\w+)")


# =============================================================================
# Argument Parser
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="visionbuddy",
        description="Vision Buddy voice navigation assistant",
        epilog="Type 'scan', 'pin', 'cancel', 'lang <name>', 'places', 'go <n>', "
               "'status' or 'quit'; any other line is handled as a spoken request.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Configuration
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        metavar="PATH",
        help="Path to configuration file (default: auto-discover)",
    )

    # Logging
    parser.add_argument(
        "-l",
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level (overrides config file)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        metavar="PATH",
        help="Path to log file (default: console only)",
    )

    # Inputs
    parser.add_argument(
        "--image",
        type=str,
        metavar="PATH",
        help="JPEG used as the camera frame for every capture",
    )

    # Operation modes
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and exit without starting a session",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use an in-memory registry and on-device speech only",
    )

    return parser


# =============================================================================
# Signal Handlers
# =============================================================================


class GracefulShutdown:
    """Manages graceful shutdown on SIGINT (Ctrl+C) and SIGTERM."""

    def __init__(self) -> None:
        self._shutdown_requested = False
        self._shutdown_event: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._original_handlers: dict[int, signal.Handlers] = {}

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    def install_handlers(self) -> None:
        """Install signal handlers for graceful shutdown."""
        self._original_handlers[signal.SIGINT] = signal.signal(
            signal.SIGINT, self._handle_signal
        )
        self._original_handlers[signal.SIGTERM] = signal.signal(
            signal.SIGTERM, self._handle_signal
        )
        logger.debug("Signal handlers installed for graceful shutdown")

    def restore_handlers(self) -> None:
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()
        logger.debug("Original signal handlers restored")

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        signal_name = signal.Signals(signum).name
        if self._shutdown_requested:
            logger.warning(f"Received {signal_name} again - forcing immediate exit")
            sys.exit(1)

        logger.info(f"Received {signal_name} - ending session...")
        self._shutdown_requested = True

        if self._shutdown_event is not None and self._loop is not None:
            # Wakes the loop even while it is blocked in select()
            self._loop.call_soon_threadsafe(self._shutdown_event.set)

    def get_shutdown_event(self) -> asyncio.Event:
        """Get or create the async shutdown event (call from inside the loop)."""
        if self._shutdown_event is None:
            self._shutdown_event = asyncio.Event()
            self._loop = asyncio.get_running_loop()
        return self._shutdown_event


_shutdown_handler = GracefulShutdown()


def get_shutdown_handler() -> GracefulShutdown:
    """Get the global shutdown handler instance."""
    return _shutdown_handler


# =============================================================================
# Startup Banner
# =============================================================================


def print_banner(config: VisionBuddyConfig, args: argparse.Namespace) -> None:
    """Print startup banner with configuration summary."""
    registry = "in-memory" if args.offline else (
        "Snowflake" if config.registry.account and config.registry.token else "in-memory (not configured)"
    )
    remote_voice = "off" if args.offline else (
        "ElevenLabs" if config.voice.api_key else "off (no API key)"
    )
    print(f"""
Vision Buddy v{__version__}
  Building:  {config.registry.building_id}
  Language:  {config.interaction.default_language}
  Vision:    {config.vision.model}{'' if config.vision.api_key else ' (no API key)'}
  Registry:  {registry}
  Voice:     {remote_voice}, local fallback {config.local_speech.backend}
  Camera:    {args.image or 'none (use --image)'}
""")


# =============================================================================
# Session Wiring
# =============================================================================


def build_orchestrator(
    config: VisionBuddyConfig,
    offline: bool = False,
    image: Optional[str] = None,
) -> InteractionOrchestrator:
    """
    Wire the orchestrator to its collaborators.

    The Snowflake registry is used when it has credentials and the session
    is not offline; otherwise an empty in-memory registry stands in.
    """
    local = LocalSpeechService.from_config(config.local_speech)
    remote = None if offline else ElevenLabsTTS.from_config(config.voice)
    speech = SpeechOutput(
        local=local,
        remote=remote,
        player=AudioPlayer(),
        voice_profile=config.voice.voice_id,
    )

    registry = None
    if not offline:
        snowflake = SnowflakeRegistryClient.from_config(config.registry)
        if snowflake.configured:
            registry = snowflake
        else:
            logger.warning("Snowflake credentials missing, using an in-memory registry")
    if registry is None:
        registry = InMemoryRegistry()

    return InteractionOrchestrator(
        frames=ImageFileFrameSource(image),
        vision=GeminiVisionClient.from_config(config.vision),
        speech=speech,
        registry=registry,
        recognizer=TypedSpeechRecognizer(),
        config=config.interaction,
        building_id=config.registry.building_id,
        hazard_cue=AudioCues.hazard_chime(),
    )


def _print_event(event: OrchestratorEvent) -> None:
    if event.event_type is EventType.ANALYSIS_READY:
        data = event.data
        if data.get("hazard"):
            print(f"  ! {data['hazard']}")
        if data.get("navigation"):
            print(f"  > {data['navigation']}")
        print(f"  {data.get('description', '')}")
    elif event.event_type is EventType.TRIGGER_REJECTED:
        print(f"  (busy: {event.data.get('state')})")
    elif event.event_type is EventType.NAVIGATION_CHANGED:
        target = event.data.get("target")
        print(f"  [navigation] {target or 'cleared'}")
    elif event.event_type is EventType.LANGUAGE_CHANGED:
        print(f"  [language] {event.data.get('language')}")
    elif event.event_type is EventType.BALANCE_CHANGED:
        print(f"  [balance] {event.data.get('balance'):.3f}")
    elif event.message:
        print(f"  [{event.source}] {event.message}")


async def _close_clients(orchestrator: InteractionOrchestrator) -> None:
    for client in (orchestrator.registry, orchestrator.speech.remote):
        close = getattr(client, "close", None)
        if close is not None:
            await close()


async def handle_line(
    orchestrator: InteractionOrchestrator,
    recognizer: TypedSpeechRecognizer,
    line: str,
) -> None:
    """Run one session command."""
    command = line.strip()
    lowered = command.lower()

    if lowered == "scan":
        await orchestrator.on_scan_requested()
    elif lowered == "pin":
        await orchestrator.on_pin_requested()
    elif lowered == "cancel":
        await orchestrator.on_navigation_cancelled()
    elif lowered.startswith("lang "):
        if not await orchestrator.on_language_selected(command[5:]):
            print(f"  (language not changed: {command[5:].strip()})")
    elif lowered == "places":
        if not orchestrator.golden_path:
            print("  (no saved places)")
        for number, node in enumerate(orchestrator.golden_path, start=1):
            print(f"  {number}. {node.description} [{node.id}]")
    elif GO_COMMAND.fullmatch(lowered):
        place = command.split(None, 1)[1]
        target = int(place) if place.isdigit() else place
        if orchestrator.find_place(target) is None:
            print(f"  (no saved place {place})")
        else:
            await orchestrator.on_place_selected(target)
    elif lowered == "status":
        for key, value in orchestrator.snapshot().items():
            print(f"  {key}: {value}")
    elif command:
        if await orchestrator.on_voice_toggle():
            await recognizer.deliver(command)


async def async_main(args: argparse.Namespace, config: VisionBuddyConfig) -> int:
    """Run an interactive session.

    Args:
        args: Parsed command-line arguments
        config: Validated configuration

    Returns:
        Exit code (0 for success)
    """
    shutdown = get_shutdown_handler()
    shutdown_event = shutdown.get_shutdown_event()

    orchestrator = build_orchestrator(config, offline=args.offline, image=args.image)
    recognizer = orchestrator.recognizer
    for event_type in EventType:
        if event_type not in (EventType.STATE_CHANGED, EventType.REGISTRY_STATUS):
            orchestrator.subscribe(event_type, _print_event)

    reader = StdinReader(asyncio.get_running_loop())
    turns: Set[asyncio.Task] = set()

    try:
        await orchestrator.start()
        print("Connected to spatial registry" if orchestrator.registry_connected
              else f"Registry offline: {orchestrator.status_message}")
        reader.start()
        logger.info("Session running. Type 'quit' or press Ctrl+C to stop.")

        stop_waiter = asyncio.ensure_future(shutdown_event.wait())
        while True:
            next_line = asyncio.ensure_future(reader.lines.get())
            done, _ = await asyncio.wait(
                {next_line, stop_waiter}, return_when=asyncio.FIRST_COMPLETED
            )
            if stop_waiter in done:
                next_line.cancel()
                break

            line = next_line.result()
            if line is None or line.strip().lower() in ("quit", "exit"):
                stop_waiter.cancel()
                break

            # Each command runs as its own task so a busy turn rejects the next trigger
            task = asyncio.create_task(handle_line(orchestrator, recognizer, line))
            turns.add(task)
            task.add_done_callback(turns.discard)

        for task in list(turns):
            task.cancel()
        await asyncio.gather(*turns, return_exceptions=True)
        await orchestrator.shutdown()

        metrics = orchestrator.get_metrics()
        logger.info(
            f"Session ended: {metrics['turns_completed']} turns completed, "
            f"{metrics['turns_failed']} failed, {metrics['triggers_rejected']} rejected"
        )
        return 0

    except Exception as e:
        logger.exception(f"Fatal error in session: {e}")
        orchestrator.speech.stop()
        return 1

    finally:
        await _close_clients(orchestrator)


def main() -> int:
    """Main entry point for the Vision Buddy application.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = create_parser()
    args = parser.parse_args()

    # Basic setup before config is loaded
    setup_logging(args.log_level or "INFO", args.log_file)

    logger.info(f"Vision Buddy v{__version__} starting...")

    try:
        logger.debug(f"Loading configuration from: {args.config or 'auto-discover'}")
        config = load_config(args.config)
        logger.info("Configuration loaded successfully")
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    if args.log_level is None or (args.log_file is None and config.log_file):
        setup_logging(args.log_level or config.log_level, args.log_file or config.log_file)

    print_banner(config, args)

    if args.dry_run:
        logger.info("Dry run mode - configuration valid, exiting")
        print("Configuration is valid")
        return 0

    shutdown = get_shutdown_handler()
    shutdown.install_handlers()

    try:
        return asyncio.run(async_main(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except VisionBuddyError as e:
        logger.error(f"Vision Buddy error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1
    finally:
        shutdown.restore_handlers()
        logger.info("Vision Buddy session closed")


if __name__ == "__main__":
    sys.exit(main())
