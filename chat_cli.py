#!/usr/bin/env python3
"""
Console chat for the dynamic lending agent.

Usage:
    python chat_cli.py            # mocked catalog, no transactions are planned
    python chat_cli.py --live     # catalog and plans from the planning service
"""

import argparse
import asyncio
import logging
import sys

from ember_agents.agents.lending.agent import DynamicLendingAgent
from ember_agents.agents.lending.config import LendingConfig
from ember_agents.agents.lending.controller import AgentResponse, LendingSession
from ember_agents.agents.lending.dispatcher import LendingDispatchError
from ember_agents.infrastructure import setup_logging
from ember_agents.llm import LLMError

logger = logging.getLogger("chat_cli")

EXIT_COMMANDS = {"exit", "quit", "q"}


class Colors:
    BLUE = "\033[94m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    END = "\033[0m"


def print_header(config: LendingConfig):
    print(f"\n{Colors.CYAN}{Colors.BOLD}EMBER LENDING AGENT{Colors.END}")
    print(f"{Colors.YELLOW}Mode: {config.mode} | Model: {config.model}{Colors.END}")
    if config.mode == "mock":
        print(f"{Colors.YELLOW}This agent works on mocked data. No transactions will be issued.{Colors.END}")
    print(f"{Colors.YELLOW}Commands: 'exit' to leave | 'reset' to drop the current action{Colors.END}")
    print()


def print_parameters(session: LendingSession):
    params = session.payload.to_public()
    if not params:
        return
    lines = "\n ".join(f"{Colors.YELLOW}{name}{Colors.END}: {value}" for name, value in params.items())
    print(f"{Colors.BOLD}[parameters]{Colors.END}\n {lines}")


def print_response(response: AgentResponse):
    if response.dispatched:
        print(f"{Colors.GREEN}[dispatched]{Colors.END} {response.dispatched}")
    print(f"{Colors.BOLD}[assistant]{Colors.END} {response.content}")
    print()


async def chat_loop(agent: DynamicLendingAgent):
    controller = agent.controller
    session = await controller.start_session()
    print("Agent started. Type your message below.\n")

    while True:
        try:
            user_input = (await asyncio.to_thread(input, f"{Colors.BLUE}[user]:{Colors.END} ")).strip()
        except (EOFError, KeyboardInterrupt):
            print(f"\n{Colors.YELLOW}Bye!{Colors.END}")
            break

        if not user_input:
            continue
        if user_input.lower() in EXIT_COMMANDS:
            print(f"{Colors.YELLOW}Bye!{Colors.END}")
            break
        if user_input.lower() == "reset":
            await controller.abandon(session)
            print(f"{Colors.YELLOW}Current action dropped.{Colors.END}\n")
            continue

        try:
            response = await controller.process_user_input(session, user_input)
        except LendingDispatchError:
            print(f"{Colors.RED}[assistant]{Colors.END} Sorry, the action could not be executed. Please try again.\n")
            continue
        except Exception:
            logger.exception("Unexpected error while processing %r", user_input)
            print(f"{Colors.RED}[assistant]{Colors.END} Sorry, something went wrong. Please try again.\n")
            continue

        print_parameters(session)
        print_response(response)


def main():
    parser = argparse.ArgumentParser(description="Chat with the Ember lending agent")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--mock", dest="mode", action="store_const", const="mock", help="Use the mocked catalog")
    mode.add_argument("--live", dest="mode", action="store_const", const="live", help="Use the planning service")
    parser.add_argument("--model", help="Chat model used for extraction and normalization")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    args = parser.parse_args()

    setup_logging(args.log_level)

    try:
        config = LendingConfig.load()
        if args.mode:
            config.mode = args.mode
        if args.model:
            config.model = args.model
        agent = DynamicLendingAgent(config)
    except (ValueError, LLMError) as exc:
        print(f"{Colors.RED}[error]{Colors.END} {exc}")
        sys.exit(1)

    print_header(config)

    async def run():
        try:
            await chat_loop(agent)
        finally:
            await agent.aclose()

    asyncio.run(run())


if __name__ == "__main__":
    main()
