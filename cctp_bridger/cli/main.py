"""CLI entrypoint for planning and executing CCTP bridges."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from cctp_bridger.config import BridgerConfig, ConfigError, load_config
from cctp_bridger.core.attestation import AttestationClient
from cctp_bridger.core.errors import BridgeError
from cctp_bridger.core.executor import BridgeExecutor
from cctp_bridger.core.models import BridgeRequest
from cctp_bridger.core.planner import BridgePlanner
from cctp_bridger.core.registry import resolve_chain, supported_chains
from cctp_bridger.core.session import BridgeState
from cctp_bridger.core.signer import Web3Signer
from cctp_bridger.core.utils import format_usdc, get_logger, parse_usdc

LOGGER = get_logger("cctp_bridger.cli")

load_dotenv()


def _build_request(args: argparse.Namespace, recipient: Optional[str]) -> BridgeRequest:
    if not recipient:
        raise ValueError("a recipient address is required")
    return BridgeRequest(
        source_chain_id=resolve_chain(args.source).chain_id,
        dest_chain_id=resolve_chain(args.dest).chain_id,
        amount=parse_usdc(args.amount),
        recipient=recipient,
    )


def cmd_chains(args: argparse.Namespace) -> int:
    for chain in supported_chains(include_testnets=not args.mainnet_only):
        suffix = " (testnet)" if chain.testnet else ""
        print(f"{chain.key:<18} chain_id={chain.chain_id:<9} domain={chain.domain}{suffix}")
        print(f"  usdc={chain.usdc}")
        print(f"  tokenMessenger={chain.token_messenger}")
        print(f"  messageTransmitter={chain.message_transmitter}")
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    request = _build_request(args, args.recipient)
    plan = BridgePlanner().plan(request)
    if args.json:
        print(json.dumps(plan.to_dict(), indent=2))
    else:
        print(plan.summary())
    return 0


def _build_executor(config: BridgerConfig, request: BridgeRequest, private_key: str) -> BridgeExecutor:
    for chain_id in (request.source_chain_id, request.dest_chain_id):
        config.chain(chain_id).ensure_rpc_url()

    signer = Web3Signer(
        private_key=private_key,
        rpc_urls=config.rpc_urls(),
        fallback_gas=config.defaults.fallback_gas,
    )
    client = AttestationClient(
        config.attestation.url_for(request.source_chain_id),
        timeout=config.defaults.api_timeout,
    )
    return BridgeExecutor(
        request,
        signer=signer,
        attestation_client=client,
        poll_interval=config.attestation.poll_interval,
        max_poll_attempts=config.attestation.max_attempts,
        receipt_timeout=config.defaults.receipt_timeout,
    )


def cmd_bridge(args: argparse.Namespace) -> int:
    private_key = (os.getenv("PRIVATE_KEY") or "").strip()
    if not private_key:
        print("Error: PRIVATE_KEY environment variable not set")
        return 1

    config = load_config(args.config)
    request = _build_request(args, args.recipient or config.default_recipient)

    with _build_executor(config, request, private_key) as executor:
        LOGGER.info("Source balance: %s", format_usdc(executor.balance()))
        state = executor.run(timeout=args.timeout)
        session = executor.session
        print(json.dumps(session.to_dict(), indent=2))
        if state is BridgeState.COMPLETED:
            return 0
        if state is BridgeState.ERROR:
            print(f"Error: {session.error}")
        else:
            print(f"Error: bridge still {state.value} after {args.timeout}s")
        return 1


def _add_request_arguments(parser: argparse.ArgumentParser, *, recipient_required: bool) -> None:
    parser.add_argument("--source", required=True, help="Source chain name or id (e.g. arbitrum)")
    parser.add_argument("--dest", required=True, help="Destination chain name or id (e.g. base)")
    parser.add_argument("--amount", required=True, help="USDC amount, e.g. 500 or 12.5")
    parser.add_argument("--recipient", required=recipient_required, help="Recipient address on the destination chain")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bridge USDC between chains with Circle CCTP")
    subparsers = parser.add_subparsers(dest="command", required=True)

    chains = subparsers.add_parser("chains", help="List supported chains")
    chains.add_argument("--mainnet-only", action="store_true", help="Hide testnets")
    chains.set_defaults(handler=cmd_chains)

    plan = subparsers.add_parser("plan", help="Print the bridge steps without sending anything")
    _add_request_arguments(plan, recipient_required=True)
    plan.add_argument("--json", action="store_true", help="Emit the plan as JSON")
    plan.set_defaults(handler=cmd_plan)

    bridge = subparsers.add_parser("bridge", help="Approve, burn, wait for attestation and mint")
    _add_request_arguments(bridge, recipient_required=False)
    bridge.add_argument("--config", type=Path, default=Path("config.json"), help="Path to config.json")
    bridge.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the mint")
    bridge.set_defaults(handler=cmd_bridge)

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    try:
        code = args.handler(args)
    except (BridgeError, ConfigError, ValueError, ConnectionError) as exc:
        print(f"\nError: {exc}")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
