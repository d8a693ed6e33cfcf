from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

from .certificates import generate_self_signed, verify
from .config import MaterialConfig
from .exceptions import SslMaterialError
from .keygen import generate_key
from .logging_utils import configure_logging
from .settings import CertificateSettings

KEY_FILE_MODE = 0o600
CERT_FILE_MODE = 0o644


class _HelpFormatter(
    argparse.RawTextHelpFormatter,
    argparse.ArgumentDefaultsHelpFormatter,
):
    """Keep multiline examples readable and include defaults."""


CLI_HELP_EPILOG = """Environment:
  Optional:
    SSL_MATERIAL_SECRET_FILE        # default secret for encrypted secret store items
    SSL_MATERIAL_SECRET_STORE_DIR   # root of the directory secret store
    SSL_MATERIAL_VAULT_DIR          # root of the directory vault
    SSL_MATERIAL_VAULT_CLIENT       # vault client name
    SSL_MATERIAL_VAULT_CLIENT_KEY   # vault client RSA private key (PEM)

Examples:
  # Self-signed material for www, written next to each other
  ssl-material resolve www --server-name www.example.test --source self-signed --dir ./tls --write

  # Key and certificate from the encrypted secret store
  ssl-material resolve www --server-name www.example.test --source secret_store \\
      --bag ssl --item www --key-item-key key --cert-item-key cert --encrypted

  # Settings from a JSON namespace tree
  ssl-material resolve www --namespace-file node.json --namespace tls www

  # Check that a certificate belongs to a key and hostname
  ssl-material verify --key-file www.key --cert-file www.pem --hostname www.example.test
"""


def _write_text_output(payload: str, out_path: str | None, label: str) -> None:
    if out_path is None:
        print(payload)
        return
    target = Path(out_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(payload, encoding="utf-8")
    print(f"Wrote {label} to: {target}")


def _write_json_output(payload: dict[str, object], out_path: str | None, label: str) -> None:
    _write_text_output(json.dumps(payload, indent=2, sort_keys=True), out_path, label)


def _read_binary_file(path: str) -> bytes:
    source = Path(path)
    if not source.exists():
        raise ValueError(f"File does not exist: {source}")
    if not source.is_file():
        raise ValueError(f"Path is not a file: {source}")
    return source.read_bytes()


def write_artifact(path: str | Path, content: bytes, mode: int) -> bool:
    """Write `content` with `mode` unless the file already holds it. True when written."""
    target = Path(path)
    if target.is_file() and target.read_bytes() == content:
        return False
    target.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as handle:
        handle.write(content)
    os.chmod(target, mode)
    return True


def _load_namespace(args: argparse.Namespace) -> dict[str, Any]:
    if args.namespace_file is None:
        if args.namespace:
            raise ValueError("--namespace requires --namespace-file.")
        return {}
    try:
        tree = json.loads(_read_binary_file(args.namespace_file).decode("utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Namespace file is not valid JSON: {args.namespace_file}") from exc

    node: Any = tree
    for key in args.namespace or []:
        if not isinstance(node, dict) or key not in node:
            raise ValueError(
                f"Namespace path {'.'.join(args.namespace)} not found in {args.namespace_file}"
            )
        node = node[key]
    if not isinstance(node, dict):
        raise ValueError("Namespace must resolve to a JSON object.")
    return node


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ssl-material",
        description="Resolve, verify and generate TLS keys and certificates.",
        formatter_class=_HelpFormatter,
        epilog=CLI_HELP_EPILOG,
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level for the log file; defaults to SSL_MATERIAL_LOG_LEVEL or INFO.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser(
        "resolve",
        help="Resolve a key and certificate from their configured sources.",
        formatter_class=_HelpFormatter,
    )
    resolve.add_argument("name", help="Certificate name; files default to NAME.key / NAME.pem.")
    resolve.add_argument("--server-name", help="Common name; defaults to the namespace or --fqdn.")
    resolve.add_argument("--fqdn", default=None, help="Fallback identity when no server name is set.")
    resolve.add_argument("--platform", default=None, help="Platform used for default directories.")
    resolve.add_argument("--source", help="Source for both artifacts.")
    resolve.add_argument("--key-source", help="Source for the key only.")
    resolve.add_argument("--cert-source", help="Source for the certificate only.")
    resolve.add_argument("--dir", help="Directory for both artifacts.")
    resolve.add_argument("--key-path", help="Explicit key path.")
    resolve.add_argument("--cert-path", help="Explicit certificate path.")
    resolve.add_argument("--bag", help="Secret store or vault container for both artifacts.")
    resolve.add_argument("--item", help="Secret store or vault item for both artifacts.")
    resolve.add_argument("--key-item-key", help="Item field holding the key.")
    resolve.add_argument("--cert-item-key", help="Item field holding the certificate.")
    resolve.add_argument(
        "--encrypted",
        action="store_true",
        default=None,
        help="Secret store items are encrypted.",
    )
    resolve.add_argument("--secret-file", help="Secret file for encrypted items.")
    resolve.add_argument("--namespace-file", help="JSON file holding the configuration tree.")
    resolve.add_argument(
        "--namespace",
        nargs="+",
        help="Path of keys inside --namespace-file selecting this certificate's settings.",
    )
    resolve.add_argument(
        "--write",
        action="store_true",
        help="Write the key and certificate to their paths instead of printing them.",
    )

    verify_parser = subparsers.add_parser(
        "verify",
        help="Check that a certificate matches a key and hostname.",
        formatter_class=_HelpFormatter,
    )
    verify_parser.add_argument("--key-file", required=True)
    verify_parser.add_argument("--cert-file", required=True)
    verify_parser.add_argument("--hostname", required=True)

    generate = subparsers.add_parser(
        "generate",
        help="Generate a fresh key and self-signed certificate.",
        formatter_class=_HelpFormatter,
    )
    generate.add_argument("--hostname", required=True)
    generate.add_argument("--key-out", help="Write the key here instead of printing it.")
    generate.add_argument("--cert-out", help="Write the certificate here instead of printing it.")
    return parser


def _run_resolve(args: argparse.Namespace) -> None:
    config = MaterialConfig.from_env()
    overrides = {
        "server_name": args.server_name,
        "source": args.source,
        "key_source": args.key_source,
        "cert_source": args.cert_source,
        "dir": args.dir,
        "key_path": args.key_path,
        "cert_path": args.cert_path,
        "bag": args.bag,
        "item": args.item,
        "key_item_key": args.key_item_key,
        "cert_item_key": args.cert_item_key,
        "encrypted": args.encrypted,
        "secret_file": args.secret_file,
    }
    settings = CertificateSettings.build(
        args.name,
        _load_namespace(args),
        platform=args.platform,
        fqdn=args.fqdn,
        default_secret_file=config.default_secret_file,
        overrides=overrides,
    )
    material = settings.resolve(config.build_reader())

    if args.write:
        key_written = write_artifact(settings.key_path, material.key_bytes, KEY_FILE_MODE)
        cert_written = write_artifact(settings.cert_path, material.cert_bytes, CERT_FILE_MODE)
        _write_json_output(
            {
                "server_name": settings.identity,
                "key_path": settings.key_path,
                "cert_path": settings.cert_path,
                "key_written": key_written,
                "cert_written": cert_written,
            },
            out_path=None,
            label="resolution result",
        )
        return

    _write_json_output(
        {
            "server_name": settings.identity,
            "key_path": settings.key_path,
            "cert_path": settings.cert_path,
            **material.to_dict(),
        },
        out_path=None,
        label="resolved material",
    )


def _run_verify(args: argparse.Namespace) -> int:
    verified = verify(
        _read_binary_file(args.key_file),
        _read_binary_file(args.cert_file),
        args.hostname,
    )
    _write_json_output(
        {"hostname": args.hostname, "verified": verified},
        out_path=None,
        label="verification result",
    )
    return 0 if verified else 1


def _run_generate(args: argparse.Namespace) -> None:
    key_pem = generate_key()
    cert_pem = generate_self_signed(key_pem, args.hostname)
    if args.key_out:
        write_artifact(args.key_out, key_pem, KEY_FILE_MODE)
        print(f"Wrote private key to: {args.key_out}")
    else:
        print(key_pem.decode("utf-8"), end="")
    if args.cert_out:
        write_artifact(args.cert_out, cert_pem, CERT_FILE_MODE)
        print(f"Wrote certificate to: {args.cert_out}")
    else:
        print(cert_pem.decode("utf-8"), end="")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        configure_logging(level=args.log_level)

        if args.command == "resolve":
            _run_resolve(args)
            return 0

        if args.command == "verify":
            return _run_verify(args)

        if args.command == "generate":
            _run_generate(args)
            return 0

        raise ValueError("Unsupported command.")
    except (SslMaterialError, ValueError, OSError) as exc:
        print(f"ssl-material error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
