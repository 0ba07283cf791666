#!/usr/bin/env python3
"""
Speak Practice command line tool.

Usage:
    speak-practice serve                         # Run the API server
    speak-practice health-check                  # Check a running backend
    speak-practice practice --scenario free_topic_01
    speak-practice progress                      # Print the progress summary
    speak-practice clear-test-data               # Drop test sessions from the store
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from speak_practice import __version__
from speak_practice.config import settings
from speak_practice.models import ProgressSnapshot
from speak_practice.practice.client import ConversationClient, ConversationClientError
from speak_practice.practice.session import PracticeConversation
from speak_practice.scenarios import SCENARIOS, get_scenario_by_id
from speak_practice.services.progress_service import get_progress_service

END_COMMANDS = {"/done", "/end", "/quit"}


class Colors:
    """ANSI color codes for terminal output."""

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    RESET = "\033[0m"

    @classmethod
    def disable(cls):
        """Disable colors for non-TTY outputs."""
        cls.RED = cls.GREEN = cls.YELLOW = cls.BLUE = ""
        cls.CYAN = cls.BOLD = cls.RESET = ""


def print_header(text: str):
    print(f"\n{Colors.BOLD}{Colors.CYAN}{'=' * 60}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}  {text}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}{'=' * 60}{Colors.RESET}\n")


def print_success(text: str):
    print(f"{Colors.GREEN}✓ {text}{Colors.RESET}")


def print_warning(text: str):
    print(f"{Colors.YELLOW}⚠ {text}{Colors.RESET}")


def print_error(text: str):
    print(f"{Colors.RED}✗ {text}{Colors.RESET}")


def print_info(text: str):
    print(f"{Colors.BLUE}ℹ {text}{Colors.RESET}")


def cmd_serve(args: argparse.Namespace) -> int:
    from speak_practice.main import run_server

    run_server()
    return 0


def cmd_health_check(args: argparse.Namespace) -> int:
    client = ConversationClient(base_url=args.backend_url)
    try:
        data = asyncio.run(client.health())
    except ConversationClientError as e:
        print_error(f"{e} ({client.base_url})")
        return 1

    if data.get("status") != "OK":
        print_error(f"Backend reported status {data.get('status')!r} ({client.base_url})")
        return 1

    print_success(f"{data.get('message', 'Backend is running')} ({client.base_url})")
    origins = data.get("allowlist") or []
    if origins:
        print_info(f"Allowed origins: {', '.join(origins)}")
    return 0


def format_progress(snapshot: ProgressSnapshot) -> List[str]:
    """Human readable lines for a progress snapshot."""
    overall = snapshot.overall_progress
    lines = [
        f"Level:            {overall.current_level.value}",
        f"Sessions:         {overall.total_sessions}",
        f"Practice time:    {overall.total_practice_time} min",
        f"Average score:    {overall.average_score}",
        f"Improvement:      {overall.improvement}%",
        f"Current streak:   {snapshot.streaks.current} days",
        f"Longest streak:   {snapshot.streaks.longest} days",
        "",
        "Skills:",
    ]
    for name, metric in snapshot.skill_progress:
        lines.append(
            f"  {name:<14} {metric.current_score:>5}  ({metric.trend.value}, {metric.improvement:+d}%)"
        )
    return lines


def cmd_progress(args: argparse.Namespace) -> int:
    service = get_progress_service()
    snapshot = service.get_progress_data()

    print_header("Practice Progress")
    for line in format_progress(snapshot):
        print(line)

    achievements = service.get_achievements()
    if achievements:
        print("\nAchievements:")
        for achievement in achievements:
            print(f"  {achievement.icon} {achievement.title}")
    return 0


def cmd_clear_test_data(args: argparse.Namespace) -> int:
    remaining = get_progress_service().clear_test_data()
    print_success(f"Test sessions removed, {remaining} sessions kept")
    return 0


async def run_practice(conversation: PracticeConversation) -> bool:
    """Typed-turn practice loop. Returns True when a session was saved."""
    greeting = await conversation.start()
    if greeting is None:
        print_error(conversation.error or "Failed to initialize conversation")
        return False

    print(f"{Colors.CYAN}Partner:{Colors.RESET} {greeting}")
    print_info(f"Type your reply. Enter {' or '.join(sorted(END_COMMANDS))} to finish.\n")

    while True:
        try:
            line = await asyncio.to_thread(input, "You: ")
        except EOFError:
            break
        if line.strip().lower() in END_COMMANDS:
            break
        if not line.strip():
            continue

        reply = await conversation.submit_utterance(line)
        if reply is None:
            print_warning(conversation.error or "No reply")
            continue
        print(f"{Colors.CYAN}Partner:{Colors.RESET} {reply}")

    if conversation.turn_count == 0:
        print_warning("No conversation to analyze.")
        return False

    print_info("Generating feedback...")
    session = await conversation.complete()
    if session is None:
        print_error(conversation.error or "Failed to generate feedback")
        return False

    feedback = session.feedback
    print_header(f"Overall score: {feedback.overall_score}/10")
    for label, items in (
        ("Strengths", feedback.strengths),
        ("Areas for improvement", feedback.areas_for_improvement),
        ("Practice suggestions", feedback.practice_suggestions),
    ):
        if items:
            print(f"{Colors.BOLD}{label}{Colors.RESET}")
            for item in items:
                print(f"  • {item}")
    if feedback.filler_words.total_count:
        print_info(
            f"Filler words: {feedback.filler_words.total_count} "
            f"({feedback.filler_words.frequency}/min)"
        )
    for achievement in conversation.new_achievements:
        print_success(f"Achievement unlocked: {achievement.icon} {achievement.title}")
    return True


def cmd_practice(args: argparse.Namespace) -> int:
    scenario = get_scenario_by_id(args.scenario)
    if scenario is None:
        print_error(f"Unknown scenario: {args.scenario}")
        print_info("Available: " + ", ".join(s.id for s in SCENARIOS))
        return 1

    print_header(scenario.title)
    print(scenario.description)
    print()

    conversation = PracticeConversation(
        scenario,
        ConversationClient(base_url=args.backend_url),
        progress_service=None if args.no_save else get_progress_service(),
        recognition_settle_seconds=0,
    )
    try:
        saved = asyncio.run(run_practice(conversation))
    except KeyboardInterrupt:
        print()
        print_warning("Practice interrupted")
        return 1
    return 0 if saved else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="speak-practice",
        description="English speaking practice backend and tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the API server")
    serve.set_defaults(func=cmd_serve)

    health = subparsers.add_parser("health-check", help="Check a running backend")
    health.add_argument("--backend-url", default=settings.backend_url)
    health.set_defaults(func=cmd_health_check)

    practice = subparsers.add_parser("practice", help="Practice a scenario by typing")
    practice.add_argument("--scenario", default="free_topic_01", help="Scenario id")
    practice.add_argument("--backend-url", default=settings.backend_url)
    practice.add_argument(
        "--no-save", action="store_true", help="Do not store the finished session"
    )
    practice.set_defaults(func=cmd_practice)

    progress = subparsers.add_parser("progress", help="Print the progress summary")
    progress.set_defaults(func=cmd_progress)

    clear = subparsers.add_parser("clear-test-data", help="Remove test sessions")
    clear.set_defaults(func=cmd_clear_test_data)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if args.no_color or not sys.stdout.isatty():
        Colors.disable()

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
