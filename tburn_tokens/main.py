#!/usr/bin/env python3
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .core.models import TokenDeploymentRequest
from .core.services import Services, build_services
from .core.token_registry import TokenRegistry
from .utils.config_manager import ConfigManager
from .utils.exceptions import TBurnTokensError
from .utils.logging import setup_logging

LOG = logging.getLogger(__name__)


def load_json_file(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        return json.load(f)


def load_request(path: str) -> TokenDeploymentRequest:
    return TokenDeploymentRequest.from_dict(load_json_file(path))


def emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def cmd_status(services: Services, args) -> int:
    status = await services.factory.get_factory_status()
    emit(status)
    return 0 if status["isReady"] else 1


async def cmd_estimate(services: Services, args) -> int:
    estimation = await services.factory.estimate_gas(load_request(args.request))
    emit(estimation.to_dict())
    return 0


async def cmd_build_tx(services: Services, args) -> int:
    request = load_request(args.request)
    estimation = await services.factory.estimate_gas(request)
    transaction = services.factory.build_deployment_transaction(request, estimation, nonce=args.nonce)
    emit({"transaction": transaction.to_dict(), "gasEstimation": estimation.to_dict()})
    return 0


async def cmd_simulate(services: Services, args) -> int:
    simulated = await services.factory.generate_mock_deployment_for_simulation(load_request(args.request))
    emit(simulated.to_dict())
    return 0


async def cmd_process_receipt(services: Services, args) -> int:
    result = await services.factory.process_deployment_receipt(
        load_request(args.request),
        args.tx_hash,
        load_json_file(args.receipt)
    )
    emit(result.to_dict())
    return 0 if result.success else 1


async def cmd_wait_receipt(services: Services, args) -> int:
    result = await services.factory.wait_for_transaction_receipt(
        args.tx_hash,
        confirmations=args.confirmations,
        timeout=args.timeout
    )
    emit(result.to_dict())
    return 0 if result.status == "success" else 1


async def cmd_tokens(services: Services, args) -> int:
    registry = services.registry
    if args.active:
        tokens = registry.get_active_tokens()
    elif args.deployer:
        tokens = registry.get_tokens_by_deployer(args.deployer)
    elif args.standard:
        tokens = registry.get_tokens_by_standard(args.standard)
    elif args.status:
        tokens = registry.get_tokens_by_status(args.status)
    elif args.source:
        tokens = registry.get_tokens_by_source(args.source)
    else:
        tokens = registry.get_all_tokens()

    if args.admin:
        emit([TokenRegistry.to_admin_token_format(t) for t in tokens])
    else:
        emit([t.to_dict() for t in tokens])
    return 0


async def cmd_stats(services: Services, args) -> int:
    emit(services.registry.get_stats())
    return 0


async def cmd_export(services: Services, args) -> int:
    exported = services.registry.export_all_tokens()
    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w") as f:
            json.dump(exported, f, indent=2, default=str)
        LOG.info(f"Exported {len(exported)} tokens to {output}")
    else:
        emit(exported)
    return 0


async def _admin_transition(services: Services, action: str, address: str, **kwargs) -> int:
    registry = services.registry
    updated = await getattr(registry, f"{action}_token")(address, **kwargs)
    if not updated:
        token = registry.get_token(address)
        if token is None:
            error = f"Token not found: {address}"
        else:
            error = f"Cannot {action} token {address} in status {token.status}"
        LOG.error(error)
        emit({"success": False, "error": error})
        return 1
    emit({"success": True, "token": registry.get_token(address).to_dict()})
    return 0


async def cmd_pause(services: Services, args) -> int:
    return await _admin_transition(services, "pause", args.address)


async def cmd_resume(services: Services, args) -> int:
    return await _admin_transition(services, "resume", args.address)


async def cmd_verify(services: Services, args) -> int:
    return await _admin_transition(services, "verify", args.address, security_score=args.security_score)


COMMANDS = {
    "status": cmd_status,
    "estimate": cmd_estimate,
    "build-tx": cmd_build_tx,
    "simulate": cmd_simulate,
    "process-receipt": cmd_process_receipt,
    "wait-receipt": cmd_wait_receipt,
    "tokens": cmd_tokens,
    "stats": cmd_stats,
    "export": cmd_export,
    "pause": cmd_pause,
    "resume": cmd_resume,
    "verify": cmd_verify,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TBURN token factory and registry tool")
    parser.add_argument("--config", default=None,
                       help="Path to JSON configuration file")
    parser.add_argument("--log-level", default="INFO",
                       choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                       help="Logging level")
    parser.add_argument("--log-file", default=None,
                       help="Path to log file")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Report RPC connectivity and factory configuration")

    for name, help_text in (
        ("estimate", "Estimate gas for a deployment request"),
        ("build-tx", "Build the unsigned deployment transaction for a request"),
        ("simulate", "Register a simulated deployment without touching the chain"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--request", required=True, help="Deployment request JSON file")
        if name == "build-tx":
            p.add_argument("--nonce", type=int, default=None, help="Transaction nonce")

    p = sub.add_parser("process-receipt", help="Register the token created by a mined transaction")
    p.add_argument("--request", required=True, help="Deployment request JSON file")
    p.add_argument("--receipt", required=True, help="Transaction receipt JSON file")
    p.add_argument("--tx-hash", required=True, help="Deployment transaction hash")

    p = sub.add_parser("wait-receipt", help="Wait for a transaction receipt")
    p.add_argument("tx_hash", help="Transaction hash")
    p.add_argument("--confirmations", type=int, default=1)
    p.add_argument("--timeout", type=float, default=None,
                   help="Seconds to wait (default: receipt_timeout setting)")

    p = sub.add_parser("tokens", help="List registered tokens")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--deployer", default=None)
    group.add_argument("--standard", default=None, choices=["TBC-20", "TBC-721", "TBC-1155"])
    group.add_argument("--status", default=None)
    group.add_argument("--source", default=None)
    group.add_argument("--active", action="store_true", help="Active, confirmed and verified tokens")
    p.add_argument("--admin", action="store_true", help="Use the admin table format")

    sub.add_parser("stats", help="Registry aggregate statistics")

    p = sub.add_parser("export", help="Export all registered tokens as JSON")
    p.add_argument("--output", default=None, help="Output file (default: stdout)")

    for name in ("pause", "resume", "verify"):
        p = sub.add_parser(name, help=f"{name.capitalize()} a registered token")
        p.add_argument("address", help="Token contract address")
        if name == "verify":
            p.add_argument("--security-score", type=int, default=None)

    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    """Main execution flow"""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level, args.log_file)

    try:
        settings = ConfigManager().load_settings(args.config)
    except TBurnTokensError as e:
        LOG.error(f"Failed to load configuration: {e}")
        return 2

    try:
        async with build_services(settings) as services:
            return await COMMANDS[args.command](services, args)
    except TBurnTokensError as e:
        LOG.error(f"{args.command} failed: {e}")
        emit(e.to_dict())
        return 1


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
