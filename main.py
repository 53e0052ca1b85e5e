#!/usr/bin/env python3.13

# café ordering client
# usage: main.py <database-name> <port> <username>
# the store password, if any, comes from CAFE_DB_PASSWORD (never argv)

import atexit
import logging
import signal
import sys

from termcolor import colored, cprint
from colorama import just_fix_windows_console as enable_windows_ansi_interpretation

from cafe import accounts
from cafe.config import Settings
from cafe.db import Database
from cafe.errors import StorageError
from cafe.session import MenuStateMachine
from cafe.terminal import Terminal, safe_int

# fix windows terminal misinterpreting ansi escape sequences
enable_windows_ansi_interpretation()

logger = logging.getLogger("cafe")

USAGE = "usage: main.py <database-name> <port> <username>"


class DevelopmentFormatter(logging.Formatter):
    """human-readable, level-colored log lines"""
    COLORS = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "magenta",
    }

    def format(self, record: logging.LogRecord) -> str:
        level = colored(f"{record.levelname:8}", self.COLORS.get(record.levelname))
        message = f"[{self.formatTime(record, '%H:%M:%S')}] {level} {record.name}: {record.getMessage()}"
        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"
        return message


def configure_logging(settings: Settings):
    """stderr by default, CAFE_LOG_FILE if set; user-facing text never goes through here"""
    if settings.log_file:
        handler: logging.Handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(DevelopmentFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.log_level, logging.WARNING))


def greeting():
    Terminal.banner("""
*******************************************************
                 café ordering client ☕
*******************************************************
""")


# entry point
def main(argv: list[str] | None = None) -> int:
    """entrypoint wrapper; returns the process exit code"""
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 3:
        print(USAGE, file=sys.stderr)
        return 2
    db_name, raw_port, user = args
    port = safe_int(raw_port, minimum=1)
    if port is None:
        print(f"invalid port '{raw_port}'\n{USAGE}", file=sys.stderr)
        return 2

    settings = Settings.from_env()
    configure_logging(settings)
    accounts.set_bcrypt_rounds(settings.bcrypt_rounds)
    greeting()

    if settings.db_password:
        logger.warning("CAFE_DB_PASSWORD is set but sqlite stores take no password; ignoring it")
    print(f"Connecting to database {colored(db_name, 'yellow')} (port {port}, user {user})...")
    try:
        db = Database.connect(db_name, timeout=settings.connect_timeout)
    except StorageError as e:
        print(f"Error - Unable to Connect to Database: {e.message}", file=sys.stderr)
        return 1
    atexit.register(db.close)
    cprint("Done", "green")

    with db:
        try:
            if accounts.ensure_default_manager(db, settings.admin_login, settings.admin_password):
                cprint(f"created manager account '{settings.admin_login}'; change its password!", "yellow")
            if db.seed_menu():
                cprint("stocked the empty menu with starter items", "yellow")
        except StorageError as e:
            cprint(f"could not seed the database: {e.message}", "red")
        MenuStateMachine(db, Terminal(), history_limit=settings.history_limit).run()
        print("Disconnecting from database...")
    cprint("Done\n\nBye !", "green")
    return 0


# signal handler
class SignalHandler:
    """custom ctrl+c handler to nag user politely"""
    @staticmethod
    def sigint(_, __):
        """handle ctrl+c"""
        cprint("\nnext time, use 9 to exit!", "yellow")
        sys.exit(0)


def run():
    signal.signal(signal.SIGINT, SignalHandler.sigint)
    sys.exit(main())


if __name__ == "__main__":
    run()
