"""Command-line helpers for geth exporter tooling."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .config import NodeConfig, load_node_config
from .exceptions import ConfigError
from .settings import AppSettings, get_settings, reset_settings_cache

MASKED = "<masked>"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate geth-exporter environment configuration.",
    )
    parser.add_argument(
        "--env-file",
        dest="env_file",
        default=None,
        help="Path to a .env file whose values override the process environment.",
    )
    parser.add_argument(
        "--print-resolved",
        action="store_true",
        help="Output the resolved settings and node configuration (with secrets masked by default).",
    )
    parser.add_argument(
        "--show-secrets",
        action="store_true",
        help="Include sensitive values such as the node RPC URL when printing the resolved configuration.",
    )
    return parser


def _serialize(value: Any) -> Any:
    if is_dataclass(value):
        return {key: _serialize(val) for key, val in asdict(value).items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {key: _serialize(val) for key, val in value.items()}
    return value


def _render_resolved(settings: AppSettings, config: NodeConfig, *, show_secrets: bool) -> str:
    settings_dict = _serialize(settings)
    config_dict = _serialize(config)

    if not show_secrets:
        settings_dict["node"]["rpc_url"] = MASKED
        config_dict["rpc_url"] = MASKED

    payload = {
        "settings": settings_dict,
        "node": config_dict,
    }

    return json.dumps(payload, indent=2, sort_keys=True)


def validate_config(env_file: str | None = None) -> NodeConfig:
    """Load and validate configuration from the environment."""

    if env_file:
        env_path = Path(env_file).expanduser().resolve()

        if not env_path.is_file():
            raise FileNotFoundError(str(env_path))

        load_dotenv(env_path, override=True)
        reset_settings_cache()

    return load_node_config(get_settings())


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for configuration validation."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = validate_config(args.env_file)
    except FileNotFoundError as exc:
        parser.error(f"Env file not found: {exc}")
    except ConfigError as exc:
        parser.error(str(exc))

    if args.print_resolved:
        print(_render_resolved(get_settings(), config, show_secrets=args.show_secrets))
        return 0

    print("Configuration OK")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
