#!/usr/bin/env python
"""Pay through the checkout gateway from a terminal.

Usage:
    paypal-checkout pay 19.99 --currency EUR --description "Concert ticket"
    paypal-checkout complete "http://localhost:3000/success.html?token=...&PayerID=..."
    paypal-checkout health

``pay`` opens PayPal's approval page; after approving, PayPal lands on the
gateway's success page, whose address is handed to ``complete``.
"""
import argparse
import json
import os
import sys
import webbrowser
from collections.abc import MutableMapping
from pathlib import Path

import httpx

from paypal_checkout.checkout import CheckoutClient, Done, Message, display_amount

DEFAULT_SESSION = Path.home() / ".paypal_checkout_session.json"


class JsonFileSession(MutableMapping):
    """Session storage that outlives one command, so ``complete`` sees what ``pay`` stored."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        return json.loads(self.path.read_text() or "{}")

    def _save(self, data: dict):
        if data:
            self.path.write_text(json.dumps(data))
        elif self.path.exists():
            self.path.unlink()

    def __getitem__(self, key):
        return self._load()[key]

    def __setitem__(self, key, value):
        data = self._load()
        data[key] = value
        self._save(data)

    def __delitem__(self, key):
        data = self._load()
        del data[key]
        self._save(data)

    def __iter__(self):
        return iter(self._load())

    def __len__(self):
        return len(self._load())


class ConsolePage:

    def __init__(self, session: MutableMapping, open_browser: bool = True, out=None, err=None):
        self.session = session
        self.open_browser = open_browser
        self.out = out
        self.err = err
        self.url = None

    def navigate(self, url: str):
        self.url = url
        print(f"Approve the payment at: {url}", file=self.out or sys.stdout)
        if self.open_browser:
            webbrowser.open(url)

    def replace_url(self, url: str):
        self.url = url

    def show_message(self, message: Message):
        print(message.text, file=(self.out or sys.stdout) if message.kind == "success" else (self.err or sys.stderr))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="paypal-checkout", description=__doc__.splitlines()[0])
    parser.add_argument(
        "--gateway",
        default=os.getenv("CHECKOUT_GATEWAY_URL", f"http://localhost:{os.getenv('PORT', '3000')}"),
        help="Base URL of the order gateway",
    )
    parser.add_argument("--session-file", type=Path, default=DEFAULT_SESSION)
    commands = parser.add_subparsers(dest="command", required=True)

    pay = commands.add_parser("pay", help="Create an order and open the approval page")
    pay.add_argument("amount")
    pay.add_argument("--currency", default="USD")
    pay.add_argument("--description", default="Purchase")
    pay.add_argument("--no-browser", action="store_true", help="Only print the approval URL")

    complete = commands.add_parser("complete", help="Capture after PayPal redirected back")
    complete.add_argument("return_url")

    commands.add_parser("health", help="Check that the gateway is reachable")
    return parser


def main(argv=None, http: httpx.Client = None) -> int:
    args = build_parser().parse_args(argv)
    page = ConsolePage(JsonFileSession(args.session_file), open_browser=not getattr(args, "no_browser", False))

    with (http or httpx.Client(base_url=args.gateway)) as client:
        checkout = CheckoutClient(client, page)

        if args.command == "health":
            if not checkout.check_health():
                return 1
            print(f"Gateway OK (mode: {checkout.mode})")
            return 0

        if args.command == "pay":
            print(f"Amount: {args.currency} {display_amount(args.amount)}")
            checkout.check_health()
            checkout.submit(args.amount, args.currency, args.description)
            return 0 if checkout.busy else 1

        state = checkout.load(args.return_url)
        if not isinstance(state, Done):
            print("No token/PayerID in the return URL; nothing to capture.", file=sys.stderr)
            return 1
        return 0 if state.success else 1


if __name__ == "__main__":
    sys.exit(main())
