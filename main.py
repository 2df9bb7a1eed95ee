import argparse

from credora.api.app import run as run_api
from credora.config import settings
from credora.domain.models import RewardCategory
from credora.logging_config import configure_logging
from credora.schemas.requests import OptimizeRequest
from credora.service.orchestrator import RewardsOrchestrator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Credora reward optimizer")
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["api", "quote"],
        default="api",
        help="Run mode: api (default), quote",
    )
    parser.add_argument("--user", help="User id to quote for (quote mode)")
    parser.add_argument("--amount", type=float, help="Purchase amount (quote mode)")
    parser.add_argument("--category", choices=[c.value for c in RewardCategory if c != RewardCategory.ALL])
    parser.add_argument("--merchant", help="Merchant name, used to resolve the category when none is given")
    return parser


def run_quote(args: argparse.Namespace) -> None:
    configure_logging(settings.log_level)
    orchestrator = RewardsOrchestrator.from_settings(settings)
    request = OptimizeRequest(
        user_id=args.user,
        amount=args.amount,
        category=args.category,
        merchant=args.merchant,
    )
    print(orchestrator.optimize(request).model_dump_json(indent=2))


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.mode == "api":
        run_api()
        return

    if args.user is None or args.amount is None:
        parser.error("quote mode requires --user and --amount")
    run_quote(args)


if __name__ == "__main__":
    main()
