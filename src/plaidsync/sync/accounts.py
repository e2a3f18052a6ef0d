"""Match Plaid accounts to the sync targets in the config."""

from __future__ import annotations

from collections.abc import Sequence

from plaidsync.adapters.clients.plaid import (
    AccountsGetResponse,
    AuthGetResponse,
    PlaidAccount,
    PlaidClient,
    PlaidClientError,
)
from plaidsync.core.config import SyncTarget
from plaidsync.sync.errors import AccountResolutionError, AmbiguousAccountConfigError
from plaidsync.sync.logger import SyncLogger


def target_matches(
    target: SyncTarget, account: PlaidAccount, institution_id: str | None
) -> bool:
    """Return True if every identity field set on the target agrees with the account.

    Targets with no identity field set never match anything. account_name is
    compared against both the account's name and its official name.
    """
    if not target.has_identity:
        return False
    if (
        target.plaid_account_id is not None
        and target.plaid_account_id != account.account_id
    ):
        return False
    if target.account_name is not None and target.account_name not in (
        account.name,
        account.official_name,
    ):
        return False
    if (
        target.account_officialname is not None
        and target.account_officialname != account.official_name
    ):
        return False
    if target.account_lastfour is not None and target.account_lastfour != account.mask:
        return False
    if (
        target.account_institution_id is not None
        and target.account_institution_id != institution_id
    ):
        return False
    return True


class AccountResolver:
    """Resolves configured sync targets against the accounts Plaid reports."""

    def __init__(
        self,
        plaid_client: PlaidClient,
        targets: Sequence[SyncTarget],
        *,
        sync_logger: SyncLogger | None = None,
    ) -> None:
        self._plaid_client = plaid_client
        self._targets = targets
        self._logger = sync_logger or SyncLogger()

    def resolve(self, access_tokens: Sequence[str]) -> list[PlaidAccount]:
        """Resolve every access token and return all accounts Plaid reported.

        Matched targets are updated in place.

        Raises:
            AccountResolutionError: If Plaid rejects an access token
            AmbiguousAccountConfigError: If two targets match one account
        """
        accounts: list[PlaidAccount] = []
        for access_token in access_tokens:
            response = self._fetch_accounts(access_token)
            for account in response.accounts:
                self._apply(account, response, access_token)
            accounts.extend(response.accounts)
        return accounts

    def _fetch_accounts(
        self, access_token: str
    ) -> AccountsGetResponse | AuthGetResponse:
        # /auth/get also returns full account numbers, but only for items
        # linked with the auth product.
        try:
            return self._plaid_client.get_auth(access_token)
        except PlaidClientError as auth_error:
            self._logger.auth_fallback(access_token[-4:], auth_error)

        try:
            return self._plaid_client.get_accounts(access_token)
        except PlaidClientError as e:
            raise AccountResolutionError(
                "Failed to get account info for token ending "
                f"'{access_token[-4:]}': {e}"
            ) from e

    def _apply(
        self,
        account: PlaidAccount,
        response: AccountsGetResponse | AuthGetResponse,
        access_token: str,
    ) -> None:
        institution_id = response.item.institution_id
        matches = [
            target
            for target in self._targets
            if target_matches(target, account, institution_id)
        ]

        if not matches:
            self._logger.unknown_account(account.name, account.official_name)
            return
        if len(matches) > 1:
            raise AmbiguousAccountConfigError(
                f"{len(matches)} sync targets match Plaid account "
                f"{account.name} ({account.account_id}); "
                "add more identifying fields to the config"
            )

        target = matches[0]
        target.plaid_account_id = account.account_id
        target.account_name = account.name
        target.account_officialname = account.official_name
        target.account_lastfour = account.mask
        target.plaid_access_token = access_token
        target.plaid_item_id = response.item.item_id
        if isinstance(response, AuthGetResponse):
            target.account_number = response.account_number(account.account_id)
        self._logger.account_resolved(account.account_id, account.name)
