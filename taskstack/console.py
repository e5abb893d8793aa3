"""Console interaction helpers used by workflows and the command line."""

import getpass
import sys
from typing import Optional


def say(text: str) -> None:
    print(f"➜  {text}")


def yell(text: str, width: int = 40) -> None:
    """Print ``text`` inside a banner."""
    width = max(width, len(text) + 4)
    bar = "?" * width
    print(bar)
    print(f"? {text.center(width - 4)} ?")
    print(bar)


def ask(question: str) -> str:
    return input(f"?  {question} ").strip()


def ask_default(question: str, default: str) -> str:
    answer = input(f"?  {question} [{default}] ").strip()
    return answer or default


def ask_hidden(question: str) -> str:
    """Ask without echoing the answer (passwords, PINs)."""
    return getpass.getpass(f"?  {question} ")


def confirm(question: str, default: Optional[bool] = None) -> bool:
    """Ask a yes/no question until it gets an answer."""
    hint = {True: "[Y/n]", False: "[y/N]", None: "[y/n]"}[default]
    while True:
        answer = input(f"?  {question} {hint} ").strip().lower()
        if not answer and default is not None:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        print("Please answer y or n.", file=sys.stderr)
