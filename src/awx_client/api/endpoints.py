"""Endpoint registry for the Airwallex API.

This module is the single source of truth for endpoint metadata: path
pattern, HTTP method, expected success status and whether the operation
moves money and therefore needs an idempotency key. Paths may contain an
``{id}`` placeholder for the resource identifier.

The registry is read-only; the idempotency policy derives its pattern
list from it, so flagging an endpoint here is all it takes for requests
to it to carry an ``x-idempotency-key`` header.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping


@dataclass(frozen=True)
class Endpoint:
    """Metadata for one API operation.

    :param path: Path pattern, possibly containing ``{id}``
    :param method: HTTP method
    :param expected_status: Status returned on success
    :param requires_idempotency_key: Whether requests need a fresh key
    """

    path: str
    method: str
    expected_status: int = 200
    requires_idempotency_key: bool = False

    def format_path(self, resource_id: str) -> str:
        """Substitute ``resource_id`` for the ``{id}`` placeholder."""
        return self.path.replace("{id}", resource_id)


def _get(path: str) -> Endpoint:
    return Endpoint(path, "GET", 200)


def _post(path: str, status: int = 200, idempotent: bool = False) -> Endpoint:
    return Endpoint(path, "POST", status, idempotent)


def _create(path: str, idempotent: bool = False) -> Endpoint:
    return _post(path, 201, idempotent)


_REGISTRY: Dict[str, Endpoint] = {
    # Authentication
    "login": _create("/api/v1/authentication/login"),
    # Transfers
    "transfers_list": _get("/api/v1/transfers"),
    "transfers_get": _get("/api/v1/transfers/{id}"),
    "transfers_create": _create("/api/v1/transfers/create", idempotent=True),
    "transfers_cancel": _post("/api/v1/transfers/{id}/cancel"),
    # Beneficiaries
    "beneficiaries_list": _get("/api/v1/beneficiaries"),
    "beneficiaries_get": _get("/api/v1/beneficiaries/{id}"),
    "beneficiaries_create": _create("/api/v1/beneficiaries/create", idempotent=True),
    "beneficiaries_update": _post("/api/v1/beneficiaries/{id}/update"),
    "beneficiaries_delete": _post("/api/v1/beneficiaries/{id}/delete"),
    "beneficiaries_validate": _post("/api/v1/beneficiaries/validate"),
    # Payers
    "payers_list": _get("/api/v1/payers"),
    "payers_get": _get("/api/v1/payers/{id}"),
    "payers_create": _create("/api/v1/payers/create"),
    "payers_update": _post("/api/v1/payers/update/{id}"),
    "payers_delete": _post("/api/v1/payers/delete/{id}"),
    "payers_validate": _post("/api/v1/payers/validate"),
    # Confirmation letters
    "confirmation_letters_create": _create("/api/v1/confirmation_letters/create"),
    # Balances
    "balances_current": _get("/api/v1/balances/current"),
    "balances_history": _get("/api/v1/balances/history"),
    # Issuing cards
    "cards_list": _get("/api/v1/issuing/cards"),
    "cards_get": _get("/api/v1/issuing/cards/{id}"),
    "cards_get_details": _get("/api/v1/issuing/cards/{id}/details"),
    "cards_get_limits": _get("/api/v1/issuing/cards/{id}/limits"),
    "cards_create": _create("/api/v1/issuing/cards/create", idempotent=True),
    "cards_update": _post("/api/v1/issuing/cards/{id}/update"),
    "cards_activate": _post("/api/v1/issuing/cards/{id}/activate"),
    # Cardholders
    "cardholders_list": _get("/api/v1/issuing/cardholders"),
    "cardholders_get": _get("/api/v1/issuing/cardholders/{id}"),
    "cardholders_create": _create("/api/v1/issuing/cardholders/create"),
    "cardholders_update": _post("/api/v1/issuing/cardholders/{id}/update"),
    # Card transactions
    "card_transactions_list": _get("/api/v1/issuing/transactions"),
    "card_transactions_get": _get("/api/v1/issuing/transactions/{id}"),
    # Issuing authorizations
    "authorizations_list": _get("/api/v1/issuing/authorizations"),
    "authorizations_get": _get("/api/v1/issuing/authorizations/{id}"),
    # Issuing transaction disputes
    "transaction_disputes_list": _get("/api/v1/issuing/transaction_disputes"),
    "transaction_disputes_get": _get("/api/v1/issuing/transaction_disputes/{id}"),
    "transaction_disputes_create": _create(
        "/api/v1/issuing/transaction_disputes/create"
    ),
    "transaction_disputes_update": _post(
        "/api/v1/issuing/transaction_disputes/{id}/update"
    ),
    "transaction_disputes_submit": _post(
        "/api/v1/issuing/transaction_disputes/{id}/submit"
    ),
    "transaction_disputes_cancel": _post(
        "/api/v1/issuing/transaction_disputes/{id}/cancel"
    ),
    # FX
    "fx_rates_current": _get("/api/v1/fx/rates/current"),
    "fx_quotes_create": _create("/api/v1/fx/quotes/create"),
    "fx_quotes_get": _get("/api/v1/fx/quotes/{id}"),
    "fx_conversions_list": _get("/api/v1/fx/conversions"),
    "fx_conversions_get": _get("/api/v1/fx/conversions/{id}"),
    "fx_conversions_create": _create("/api/v1/fx/conversions/create", idempotent=True),
    # Deposits
    "deposits_list": _get("/api/v1/deposits"),
    "deposits_get": _get("/api/v1/deposits/{id}"),
    # Financial reports
    "reports_create": _create("/api/v1/finance/financial_reports/create"),
    "reports_list": _get("/api/v1/finance/financial_reports"),
    "reports_get": _get("/api/v1/finance/financial_reports/{id}"),
    "reports_get_content": _get("/api/v1/finance/financial_reports/{id}/content"),
    # Webhooks
    "webhooks_list": _get("/api/v1/webhooks"),
    "webhooks_get": _get("/api/v1/webhooks/{id}"),
    "webhooks_create": _create("/api/v1/webhooks/create"),
    "webhooks_delete": _post("/api/v1/webhooks/{id}/delete"),
    # Schemas
    "beneficiary_schema_generate": _post("/api/v1/beneficiary_api_schemas/generate"),
    "transfer_schema_generate": _post("/api/v1/transfer_api_schemas/generate"),
    # Global accounts
    "accounts_list": _get("/api/v1/global_accounts"),
    "accounts_get": _get("/api/v1/global_accounts/{id}"),
    # Linked accounts
    "linked_accounts_list": _get("/api/v1/linked_accounts"),
    "linked_accounts_get": _get("/api/v1/linked_accounts/{id}"),
    "linked_accounts_create": _create(
        "/api/v1/linked_accounts/create", idempotent=True
    ),
    "linked_accounts_initiate_deposit": _post(
        "/api/v1/linked_accounts/{id}/initiate_deposit"
    ),
    # Payment links
    "payment_links_list": _get("/api/v1/pa/payment_links"),
    "payment_links_get": _get("/api/v1/pa/payment_links/{id}"),
    "payment_links_create": _create(
        "/api/v1/pa/payment_links/create", idempotent=True
    ),
    # Billing customers
    "billing_customers_list": _get("/api/v1/billing_customers"),
    "billing_customers_get": _get("/api/v1/billing_customers/{id}"),
    "billing_customers_create": _create("/api/v1/billing_customers/create"),
    "billing_customers_update": _post("/api/v1/billing_customers/{id}/update"),
    # Billing products
    "billing_products_list": _get("/api/v1/products"),
    "billing_products_get": _get("/api/v1/products/{id}"),
    "billing_products_create": _create("/api/v1/products/create"),
    "billing_products_update": _post("/api/v1/products/{id}/update"),
    # Billing prices
    "billing_prices_list": _get("/api/v1/prices"),
    "billing_prices_get": _get("/api/v1/prices/{id}"),
    "billing_prices_create": _create("/api/v1/prices/create"),
    "billing_prices_update": _post("/api/v1/prices/{id}/update"),
    # Billing invoices
    "billing_invoices_list": _get("/api/v1/invoices"),
    "billing_invoices_get": _get("/api/v1/invoices/{id}"),
    "billing_invoices_create": _create("/api/v1/invoices/create"),
    # Billing subscriptions
    "billing_subscriptions_list": _get("/api/v1/subscriptions"),
    "billing_subscriptions_get": _get("/api/v1/subscriptions/{id}"),
    "billing_subscriptions_create": _create("/api/v1/subscriptions/create"),
}

ENDPOINTS: Mapping[str, Endpoint] = MappingProxyType(_REGISTRY)
"""Immutable name -> :class:`Endpoint` mapping of every known operation."""

LOGIN = ENDPOINTS["login"]


def get_endpoint(name: str) -> Endpoint:
    """Look up an endpoint by its registry name.

    :param name: Registry name, e.g. ``"transfers_create"``
    :type name: str
    :return: The endpoint metadata
    :rtype: Endpoint
    :raises KeyError: If no endpoint is registered under ``name``
    """
    try:
        return ENDPOINTS[name]
    except KeyError:
        raise KeyError(f"unknown endpoint: {name}") from None
