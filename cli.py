#!/usr/bin/env python3
"""Simple CLI for pricing and executing swaps locally"""

import argparse
import asyncio
import sys

from intentswap.config import settings
from intentswap.core.swap.errors import SwapError
from intentswap.core.swap.models import SwapAttempt
from intentswap.core.swap.service import get_swap_service
from intentswap.logging_config import setup_logging


def print_price(data, title="Price"):
    """Pretty print a price or quote payload"""
    sell = data["sell_token"]
    buy = data["buy_token"]

    print(f"\n💱 {title}")
    print("=" * 50)
    print(f"Sell: {data['sell_amount']} {sell['symbol']} ({sell['address']})")
    print(f"Buy:  ~{data['buy_amount']} {buy['symbol']} ({buy['address']})")
    print(f"Min:  {data['min_buy_amount']} {buy['symbol']}")
    if data.get("estimated_gas"):
        print(f"Gas:  {data['estimated_gas']}")

    issues = data.get("issues") or {}
    if issues.get("allowance"):
        print(f"⚠️  Allowance required for spender {issues['allowance']['spender']}")
    if issues.get("balance"):
        print(f"⚠️  Insufficient balance: have {issues['balance']['actual']}, need {issues['balance']['expected']}")
    if data.get("requires_permit"):
        print("✍️  Permit2 signature required")


async def cli_price(args):
    service = get_swap_service()
    data = await service.price(args.sell_token, args.buy_token, args.amount, args.taker)
    print_price(data)


async def cli_quote(args):
    service = get_swap_service()
    data = await service.quote(args.sell_token, args.buy_token, args.amount, args.taker)
    print_price(data, title="Quote")


async def print_progress(attempt: SwapAttempt):
    print(f"   → {attempt.stage.value}")


async def cli_swap(args):
    service = get_swap_service()
    print(f"🔁 Swapping {args.amount} {args.sell_token} → {args.buy_token} on {settings.chain_name}...")
    result = await service.execute(
        args.sell_token,
        args.buy_token,
        args.amount,
        user_id=args.user_id,
        on_progress=print_progress,
    )

    icon = "✅" if result.status == "confirmed" else "❌"
    print(f"\n{icon} {result.message}")
    if result.explorer_url:
        print(f"   {result.explorer_url}")
    print(f"   Funds moved: {'yes' if result.funds_moved else 'no'}; safe to retry with a fresh quote: "
          f"{'yes' if result.retry_safe else 'no'}")


async def cli_balance(args):
    service = get_swap_service()
    data = await service.balance(args.token, args.address)
    print(f"💰 {data['balance']} {data['token']['symbol']} @ {data['address']}")


async def cli_resolve(args):
    service = get_swap_service()
    token = await service.resolve(args.token)
    print(f"🔍 {token.symbol}: {token.address} (decimals={token.decimals}{', native' if token.is_native else ''})")


async def cli_history(args):
    service = get_swap_service()
    records = await service.history(args.user_id, args.limit)
    if not records:
        print("No swaps recorded.")
        return
    for i, record in enumerate(records, 1):
        print(f"{i:2d}. {record.created_at:%Y-%m-%d %H:%M} {record.sell_amount} {record.sell_symbol} → "
              f"{record.buy_amount} {record.buy_symbol} [{record.status}] {record.tx_hash}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="IntentSwap CLI")
    subparsers = parser.add_subparsers(dest="command")

    for name, help_text in (("price", "Indicative price"), ("quote", "Binding quote"), ("swap", "Execute a swap")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("amount", help="Human amount of the sell token, e.g. 100")
        sub.add_argument("sell_token", help="Symbol or address of the token to sell")
        sub.add_argument("buy_token", help="Symbol or address of the token to buy")
        if name == "swap":
            sub.add_argument("--user-id", dest="user_id", help="History owner (defaults to the server wallet)")
        else:
            sub.add_argument("--taker", help="Taker address (quotes default to the server wallet)")

    balance_parser = subparsers.add_parser("balance", help="Token balance")
    balance_parser.add_argument("token", help="Symbol or address; ETH for native")
    balance_parser.add_argument("address", nargs="?", help="Holder (defaults to the server wallet)")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a token symbol or address")
    resolve_parser.add_argument("token")

    history_parser = subparsers.add_parser("history", help="Recorded swaps for a user")
    history_parser.add_argument("user_id")
    history_parser.add_argument("--limit", type=int, help="Maximum records to show")

    return parser


COMMANDS = {
    "price": cli_price,
    "quote": cli_quote,
    "swap": cli_swap,
    "balance": cli_balance,
    "resolve": cli_resolve,
    "history": cli_history,
}


async def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    handler = COMMANDS.get(args.command.lower())
    if handler is None:
        print(f"❌ Unknown command: {args.command}")
        parser.print_help()
        return 1

    try:
        await handler(args)
    except SwapError as e:
        print(f"❌ Error [{e.code}]: {e.message}")
        return 1
    return 0


if __name__ == "__main__":
    setup_logging(settings.log_level)
    sys.exit(asyncio.run(main()))
