# terminal i/o: prompts, choices, tables. no business logic lives here.

import getpass
from decimal import Decimal
from typing import Callable, Iterable, Sequence

from termcolor import colored, cprint

from cafe.errors import InputFormatError


def safe_int(value: str, minimum: int | None = None) -> int | None:
    """return int value or none if invalid / below minimum"""
    try:
        v = int(value)
        if minimum is not None and v < minimum:
            return None
        return v
    except ValueError:
        return None


def parse_choice(value: str) -> int:
    """menu choice parser; raises InputFormatError on junk"""
    choice = safe_int(value.strip())
    if choice is None:
        raise InputFormatError(f"not a menu choice: {value!r}")
    return choice


def parse_boolean_input(answer: str) -> bool:
    """parse y/n style input; anything else is a no"""
    return answer.lower().strip() in ("y", "yes")


def color_money(amount: Decimal | float) -> str:
    """format amount as green money string"""
    return colored(f"${amount:.2f}", "green")


class Terminal:
    """line-oriented terminal; read_line/read_secret are swappable for scripted input"""

    def __init__(self, read_line: Callable[[str], str] | None = None,
                 read_secret: Callable[[str], str] | None = None):
        self.read_line = read_line or input
        # scripted input feeds secrets too; a real terminal hides them
        self.read_secret = read_secret or (read_line or getpass.getpass)

    # input
    def prompt(self, label: str) -> str:
        return self.read_line(colored(f"\t{label}: ", "magenta")).strip()

    def prompt_secret(self, label: str) -> str:
        return self.read_secret(colored(f"\t{label}: ", "magenta"))

    def read_choice(self) -> int:
        """keep asking until we get an integer"""
        while True:
            raw = self.read_line(colored("Please make your choice: ", "blue"))
            try:
                return parse_choice(raw)
            except InputFormatError:
                cprint("Your input is invalid!", "red")

    def confirm(self, question: str) -> bool:
        return parse_boolean_input(self.read_line(f"{question} (y/N): "))

    # output
    @staticmethod
    def print_menu(title: str, options: Iterable[tuple[int, str]]):
        cprint(title, "green", attrs=["bold"])
        cprint("-" * len(title), "green")
        for choice, label in options:
            if choice == 9:
                print(".........................")
            print(f"{colored(str(choice), 'light_blue')}. {label}")

    @staticmethod
    def print_table(records: Sequence[dict]) -> int:
        """header row then one tab-separated row per record; returns row count"""
        if not records:
            cprint("no results", "yellow")
            return 0
        header = list(records[0].keys())
        print(colored("\t".join(header), attrs=["bold"]))
        for record in records:
            print("\t".join("" if record[k] is None else str(record[k]) for k in header))
        return len(records)

    @staticmethod
    def banner(text: str):
        cprint(text, "green", attrs=["bold"])

    @staticmethod
    def success(message: str):
        cprint(message, "green")

    @staticmethod
    def info(message: str):
        print(message)

    @staticmethod
    def warn(message: str):
        cprint(message, "yellow")

    @staticmethod
    def error(message: str):
        cprint(message, "red")
