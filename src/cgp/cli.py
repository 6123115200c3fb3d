"""Gateway CLI — operator and relayer tooling for the gateway core.

Usage:
    python -m cgp.cli status
    python -m cgp.cli operators-hash --operator 0xabc...:10 --operator 0xdef...:20 --threshold 20
    python -m cgp.cli init-operators --operator 0xabc...:10 --operator 0xdef...:20 --threshold 20
    python -m cgp.cli sign-batch --chain-id 2 --item 0x<id>:approveContractCall:0x<call>
    python -m cgp.cli encode-proof --operator 0xabc...:10 --threshold 10 --signature 0x<sig>

``sign-batch`` reads the operator's private key from CGP_OPERATOR_KEY,
which may be set in a .env file at the project root.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from eth_utils import decode_hex, to_hex

from cgp.config import GatewayConfig
from cgp.crypto.abi import encode_batch_params, encode_proof, operators_hash, to_address
from cgp.crypto.ecdsa import sign_batch
from cgp.errors import GatewayError
from cgp.persistence.event_log import EventLog
from cgp.persistence.state_store import JsonFileStateStore
from cgp.service import GatewayService


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_DATA = ROOT / "data"

OPERATOR_KEY_ENV = "CGP_OPERATOR_KEY"


def _make_service(config_dir: Path, data_dir: Path) -> GatewayService:
    """Create a GatewayService with durable persistence."""
    data_dir.mkdir(parents=True, exist_ok=True)
    config = GatewayConfig.from_config_dir(config_dir)
    return GatewayService(
        config,
        store=JsonFileStateStore(data_dir / "state.json"),
        events=EventLog(storage_path=data_dir / "events.jsonl"),
    )


def _parse_operators(entries: list[str]) -> tuple[list[bytes], list[int]]:
    """Parse ``ADDRESS:WEIGHT`` entries, keeping their given order."""
    operators: list[bytes] = []
    weights: list[int] = []
    for entry in entries:
        address, sep, weight = entry.rpartition(":")
        if not sep:
            raise ValueError(f"Expected ADDRESS:WEIGHT, got {entry!r}")
        operators.append(to_address(address))
        weights.append(int(weight))
    return operators, weights


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_operators_hash(args: argparse.Namespace) -> int:
    operators, weights = _parse_operators(args.operator)
    print(to_hex(operators_hash(operators, weights, args.threshold)))
    return 0


def cmd_init_operators(args: argparse.Namespace) -> int:
    operators, weights = _parse_operators(args.operator)
    service = _make_service(args.config, args.data)
    try:
        op_hash = service.initialize_operators(operators, weights, args.threshold)
    except GatewayError as exc:
        print(f"Failed: {exc.code}: {exc}", file=sys.stderr)
        return 1
    print(f"Registered operator set {to_hex(op_hash)} at epoch {service.current_epoch()}")
    return 0


def cmd_sign_batch(args: argparse.Namespace) -> int:
    """Sign a batch payload with the operator key from the environment."""
    load_dotenv(ROOT / ".env")
    private_key = os.getenv(OPERATOR_KEY_ENV)
    if not private_key:
        print(f"Missing {OPERATOR_KEY_ENV} in environment or .env", file=sys.stderr)
        return 1

    command_ids: list[bytes] = []
    commands: list[str] = []
    calls: list[bytes] = []
    for item in args.item:
        parts = item.split(":")
        if len(parts) != 3:
            print(f"Expected COMMAND_ID:COMMAND:CALL, got {item!r}", file=sys.stderr)
            return 1
        command_ids.append(decode_hex(parts[0]))
        commands.append(parts[1])
        calls.append(decode_hex(parts[2]))

    batch = encode_batch_params(args.chain_id, command_ids, commands, calls)
    print(to_hex(sign_batch(batch, private_key)))
    return 0


def cmd_encode_proof(args: argparse.Namespace) -> int:
    operators, weights = _parse_operators(args.operator)
    signatures = [decode_hex(s) for s in args.signature or []]
    print(to_hex(encode_proof(operators, weights, args.threshold, signatures)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cgp",
        description="Cross-chain gateway core CLI",
    )
    parser.add_argument(
        "--config", type=Path, default=DEFAULT_CONFIG,
        help="Config directory (default: project config/)",
    )
    parser.add_argument(
        "--data", type=Path, default=DEFAULT_DATA,
        help="Data directory for state.json and events.jsonl (default: project data/)",
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show gateway status")

    # operators-hash / init-operators / encode-proof share operator arguments
    for name, help_text in (
        ("operators-hash", "Compute an operator-set hash"),
        ("init-operators", "Register the genesis operator set"),
        ("encode-proof", "ABI-encode a proof"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument(
            "--operator", action="append", required=True,
            help="Operator as ADDRESS:WEIGHT (repeat, ascending by address)",
        )
        p.add_argument("--threshold", type=int, required=True, help="Signing threshold")
        if name == "encode-proof":
            p.add_argument(
                "--signature", action="append",
                help="65-byte hex signature (repeat, in signing order)",
            )

    # sign-batch
    p_sign = sub.add_parser("sign-batch", help="Sign a batch payload as an operator")
    p_sign.add_argument("--chain-id", type=int, required=True, help="Destination chain id")
    p_sign.add_argument(
        "--item", action="append", required=True,
        help="Batch item as COMMAND_ID:COMMAND:CALL (hex id and call; repeat in order)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "operators-hash": cmd_operators_hash,
        "init-operators": cmd_init_operators,
        "sign-batch": cmd_sign_batch,
        "encode-proof": cmd_encode_proof,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except ValueError as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
