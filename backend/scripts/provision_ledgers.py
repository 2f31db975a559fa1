"""Create progression ledgers for users that do not have one yet."""

from __future__ import annotations

import argparse
import logging
from typing import Iterable, Optional

from godsaeng.db.session import session_scope
from godsaeng.repositories.progression_ledgers import progression_ledgers


logger = logging.getLogger("godsaeng.provision")


def provision(user_ids: Iterable[str]) -> int:
    created = 0
    with session_scope() as session:
        for raw in user_ids:
            user_id = raw.strip()
            if not user_id:
                continue
            if progression_ledgers.get(session, user_id) is not None:
                logger.info("Ledger already exists for %s", user_id)
                continue
            progression_ledgers.provision(session, user_id)
            created += 1
    logger.info("Provisioned %d progression ledgers", created)
    return created


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Provision progression ledgers for user ids.")
    parser.add_argument("user_ids", nargs="+", help="User ids issued by the authentication service.")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    args = parse_args(argv)
    provision(args.user_ids)


if __name__ == "__main__":
    main()
