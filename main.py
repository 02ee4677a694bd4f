#!/usr/bin/env python3
"""
Audit an SBOM or a list of purls against Nexus IQ Server.

Defaults for every option come from Configuration (.env / environment), so a
configured checkout only needs --application plus --sbom or --purl.

Exit codes:
  0  policy action None
  1  policy action Warning
  2  policy action Failure, or the audit itself failed
  3  configuration error
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from configuration import Configuration as Config
from iq.errors import ConfigurationError, IQServerError
from iq.iq_server import IQServer
from loggers.main_logger import main_logger as logger
from models.audit_status import AuditStatus
from models.enums import PolicyAction
from timer import Timer
from utils import read_lines_file

EXIT_OK = 0
EXIT_WARNING = 1
EXIT_FAILURE = 2
EXIT_CONFIG = 3


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="iq-audit", description="Audit an SBOM or purls with Nexus IQ Server")
    ap.add_argument("--application", default=Config.iq_application or None,
                    help="IQ Server public application ID.")
    ap.add_argument("--server", default=Config.iq_server, help="IQ Server base URL.")
    ap.add_argument("--user", default=Config.iq_user, help="IQ Server user.")
    ap.add_argument("--token", default=Config.iq_token, help="IQ Server token.")
    ap.add_argument("--stage", default=Config.iq_stage, help="IQ Server stage (develop, build, release, ...).")
    ap.add_argument("--max-retries", type=int, default=Config.iq_max_retries,
                    help="Maximum number of status polls before giving up.")
    ap.add_argument("--poll-interval", type=float, default=Config.iq_poll_interval,
                    help="Seconds between status polls.")
    ap.add_argument("--oss-index-user", default=Config.oss_index_user, help="OSS Index user.")
    ap.add_argument("--oss-index-token", default=Config.oss_index_token, help="OSS Index token.")
    ap.add_argument("--quiet", action="store_true", help="Do not print poll progress dots.")

    source = ap.add_mutually_exclusive_group(required=True)
    source.add_argument("--sbom", type=Path, help="Path to a CycloneDX XML SBOM to submit as-is.")
    source.add_argument("--purl", action="append", dest="purls", help="Package URL to audit (repeatable).")
    source.add_argument("--purls-file", type=Path, help="File with one package URL per line.")
    return ap


def exit_code_for(status: AuditStatus) -> int:
    action = status.action
    if action == PolicyAction.NONE:
        return EXIT_OK
    if action == PolicyAction.WARNING:
        return EXIT_WARNING
    return EXIT_FAILURE


def print_status(status: AuditStatus) -> None:
    if status.is_error:
        print(f"IQ Server reported an error: {status.error_message}")
    print(f"Policy Action: {status.policy_action or 'unknown'}")
    print(f"Report URL: {status.display_report_url}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    options = Config.audit_options(
        user=args.user,
        token=args.token,
        application=args.application,
        server=args.server,
        stage=args.stage,
        max_retries=args.max_retries,
        poll_interval=args.poll_interval,
        oss_index_user=args.oss_index_user,
        oss_index_token=args.oss_index_token,
    )

    try:
        server = IQServer(
            options,
            cache_dir=Config.cache_dir,
            ossindex_base_url=Config.oss_index_base_url,
            timeout=Config.iq_timeout,
            verify_tls=Config.iq_verify_tls,
            show_progress=not args.quiet,
        )
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG

    audit_timer = Timer(logger)
    audit_timer.start("starting audit timer")
    try:
        if args.sbom:
            if not args.sbom.is_file():
                print(f"ERROR: SBOM file not found: {args.sbom}", file=sys.stderr)
                return EXIT_CONFIG
            status = server.audit_with_sbom(args.sbom.read_text(encoding="utf-8"))
        else:
            purls = args.purls or read_lines_file(args.purls_file)
            status = server.audit_packages(purls)
    except IQServerError as e:
        logger.error("Audit failed: %s", e)
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except OSError as e:
        logger.error("Could not read input: %s", e)
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG
    finally:
        audit_timer.stop("stopping audit timer")
        logger.info(audit_timer.elapsed("Elapsed time for audit:"))
        server.close()

    print_status(status)
    return exit_code_for(status)


if __name__ == "__main__":
    raise SystemExit(main())
