"""Tests for resolving configured sync targets against Plaid accounts."""

from __future__ import annotations

from typing import Any

import pytest

from plaidsync.adapters.clients.plaid import PlaidAccount
from plaidsync.core.config import SyncTarget
from plaidsync.sync.accounts import AccountResolver, target_matches
from plaidsync.sync.errors import AccountResolutionError, AmbiguousAccountConfigError
from tests.fakes import MockPlaidClient


def create_account(
    *,
    account_id: str = "acc_checking",
    name: str = "Plaid Checking",
    official_name: str | None = "Plaid Gold Standard 0% Interest Checking",
    mask: str | None = "0000",
) -> dict[str, Any]:
    return {
        "account_id": account_id,
        "name": name,
        "official_name": official_name,
        "mask": mask,
        "subtype": "checking",
        "type": "depository",
    }


def accounts_response(
    *accounts: dict[str, Any], institution_id: str = "ins_109508"
) -> dict[str, Any]:
    return {
        "accounts": list(accounts),
        "item": {"item_id": "item_1", "institution_id": institution_id},
    }


class TestTargetMatches:
    def test_target_without_identity_never_matches(self) -> None:
        account = PlaidAccount.parse(create_account())

        assert not target_matches(SyncTarget(firefly_account_id="1"), account, None)

    def test_all_given_fields_must_agree(self) -> None:
        account = PlaidAccount.parse(create_account())
        target = SyncTarget(account_name="Plaid Checking", account_lastfour="1111")

        assert not target_matches(target, account, None)

    def test_name_matches_official_name(self) -> None:
        account = PlaidAccount.parse(create_account())
        target = SyncTarget(account_name="Plaid Gold Standard 0% Interest Checking")

        assert target_matches(target, account, None)

    def test_official_name_compared_with_official_name(self) -> None:
        account = PlaidAccount.parse(create_account())

        assert target_matches(
            SyncTarget(
                account_officialname="Plaid Gold Standard 0% Interest Checking"
            ),
            account,
            None,
        )
        assert not target_matches(
            SyncTarget(account_officialname="Plaid Checking"), account, None
        )

    def test_institution_id_comes_from_item(self) -> None:
        account = PlaidAccount.parse(create_account())
        target = SyncTarget(account_lastfour="0000", account_institution_id="ins_3")

        assert target_matches(target, account, "ins_3")
        assert not target_matches(target, account, "ins_109508")


class TestAccountResolver:
    def test_resolves_target_with_full_account_number(self) -> None:
        # input
        auth = {
            **accounts_response(create_account()),
            "numbers": {
                "ach": [
                    {
                        "account_id": "acc_checking",
                        "account": "1111222233330000",
                        "routing": "011401533",
                    }
                ]
            },
        }
        target = SyncTarget(account_lastfour="0000", firefly_account_id="7")

        # setup
        plaid = MockPlaidClient(auth={"token-a": auth})
        resolver = AccountResolver(plaid, [target])  # type: ignore[arg-type]

        # act
        accounts = resolver.resolve(["token-a"])

        # assert
        assert [account.account_id for account in accounts] == ["acc_checking"]
        assert target.plaid_account_id == "acc_checking"
        assert target.account_name == "Plaid Checking"
        assert target.account_officialname == "Plaid Gold Standard 0% Interest Checking"
        assert target.plaid_access_token == "token-a"  # noqa: S105
        assert target.plaid_item_id == "item_1"
        assert target.account_number == "1111222233330000"
        assert target.firefly_account_id == "7"

    def test_falls_back_to_accounts_when_auth_unavailable(self) -> None:
        # input
        target = SyncTarget(plaid_account_id="acc_checking")

        # setup
        plaid = MockPlaidClient(accounts={"token-a": accounts_response(create_account())})
        resolver = AccountResolver(plaid, [target])  # type: ignore[arg-type]

        # act
        resolver.resolve(["token-a"])

        # assert
        assert target.plaid_access_token == "token-a"  # noqa: S105
        assert target.account_number is None

    def test_failed_token_is_fatal(self) -> None:
        plaid = MockPlaidClient()
        resolver = AccountResolver(plaid, [SyncTarget(account_lastfour="0000")])  # type: ignore[arg-type]

        with pytest.raises(AccountResolutionError, match="ending '-bad'") as exc_info:
            resolver.resolve(["access-sandbox-token-bad"])

        assert "access-sandbox-token-bad" not in str(exc_info.value)

    def test_unknown_account_is_warned_and_ignored(
        self, log_messages: list[str]
    ) -> None:
        # input
        target = SyncTarget(account_lastfour="9999")

        # setup
        plaid = MockPlaidClient(accounts={"token-a": accounts_response(create_account())})
        resolver = AccountResolver(plaid, [target])  # type: ignore[arg-type]

        # act
        resolver.resolve(["token-a"])

        # assert
        assert target.plaid_access_token is None
        assert any("unknown account" in message for message in log_messages)

    def test_ambiguous_targets_are_fatal(self) -> None:
        targets = [
            SyncTarget(account_lastfour="0000", firefly_account_id="1"),
            SyncTarget(account_name="Plaid Checking", firefly_account_id="2"),
        ]
        plaid = MockPlaidClient(accounts={"token-a": accounts_response(create_account())})
        resolver = AccountResolver(plaid, targets)  # type: ignore[arg-type]

        with pytest.raises(AmbiguousAccountConfigError):
            resolver.resolve(["token-a"])

    def test_resolved_target_does_not_claim_second_account(self) -> None:
        """Once resolved, the target's account id pins it to one account."""
        # input
        target = SyncTarget(account_institution_id="ins_109508")
        response = accounts_response(
            create_account(account_id="acc_checking", mask="0000"),
            create_account(account_id="acc_savings", name="Plaid Saving", mask="1111"),
        )

        # setup
        plaid = MockPlaidClient(accounts={"token-a": response})
        resolver = AccountResolver(plaid, [target])  # type: ignore[arg-type]

        # act
        resolver.resolve(["token-a"])

        # assert
        assert target.plaid_account_id == "acc_checking"

    def test_multiple_tokens(self) -> None:
        checking = SyncTarget(plaid_account_id="acc_checking")
        card = SyncTarget(plaid_account_id="acc_card")
        plaid = MockPlaidClient(
            accounts={
                "token-a": accounts_response(create_account()),
                "token-b": accounts_response(
                    create_account(account_id="acc_card", name="Amex", mask="1005")
                ),
            }
        )
        resolver = AccountResolver(plaid, [checking, card])  # type: ignore[arg-type]

        resolver.resolve(["token-a", "token-b"])

        assert checking.plaid_access_token == "token-a"  # noqa: S105
        assert card.plaid_access_token == "token-b"  # noqa: S105
        assert card.account_lastfour == "1005"
