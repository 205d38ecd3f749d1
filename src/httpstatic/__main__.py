"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Serve the current directory on [::1]:8080
    python -m httpstatic

    # A single-page app, preloaded, reachable from the LAN
    python -m httpstatic -m -l 0.0.0.0:8080 -r dist -d dist/index.html

    # HTTPS
    python -m httpstatic -l [::]:8443 --tls_key key.pem --tls_cert cert.pem

Every startup failure (bad address, unreadable root in memory mode, broken
TLS material, port in use) prints one line to stderr and exits with 1.

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import DEFAULT_LISTEN, ServerConfig
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httpstatic",
        description="Serve a directory over HTTP or HTTPS, from disk or from memory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  httpstatic                                  # ./ on http://[::1]:8080
  httpstatic -r public -l 127.0.0.1:3000      # other root and address
  httpstatic -m -r dist -d dist/index.html    # preloaded single-page app
  httpstatic --tls_key key.pem --tls_cert cert.pem
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-m", "--in_memory",
        action="store_true",
        help="Load every file under the root into memory at startup",
    )

    parser.add_argument(
        "-l", "--listen",
        default=DEFAULT_LISTEN,
        metavar="ADDRESS",
        help=f"Address to listen on, IPv6 in brackets (default: {DEFAULT_LISTEN})",
    )

    parser.add_argument(
        "-r", "--root",
        default=".",
        metavar="PATH",
        help="Directory to serve (default: .)",
    )

    parser.add_argument(
        "-i", "--index",
        default="index.html",
        metavar="FILENAME",
        help="File served for a directory (default: index.html)",
    )

    parser.add_argument(
        "-d", "--default",
        default="index.html",
        metavar="PATH",
        help='File served when nothing matches, relative to the working '
             'directory; "" for a plain 404 (default: index.html)',
    )

    # ─────────────────────────────────────────────────────────────────────
    # TLS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--tls_key", metavar="PATH", help="PEM private key (requires --tls_cert)")
    parser.add_argument("--tls_cert", metavar="PATH", help="PEM certificate chain (requires --tls_key)")

    # ─────────────────────────────────────────────────────────────────────
    # RUNTIME
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-w", "--workers",
        type=int,
        default=4,
        help="Worker threads (default: 4, max will be 2x this)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"httpstatic {__version__}",
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Translate parsed flags into a ServerConfig."""
    return ServerConfig(
        listen=args.listen,
        root=args.root,
        index=args.index,
        default=args.default or None,
        in_memory=args.in_memory,
        tls_key=args.tls_key,
        tls_cert=args.tls_cert,
        min_workers=args.workers,
        max_workers=args.workers * 2,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv: Optional[Sequence[str]] = None):
    """Parse flags, build the server, run it until interrupted."""
    args = build_parser().parse_args(argv)

    try:
        server = HTTPServer(config_from_args(args))
        server.run()
    except (ValueError, OSError) as e:
        # ssl.SSLError is an OSError
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
