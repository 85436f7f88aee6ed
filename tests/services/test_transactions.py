"""Tests for transaction config parsing and payment option payloads."""
# pylint: disable=missing-function-docstring

import pytest

from assistant_fulfillment.services.transactions import (
    ActionPaymentTransactionConfig,
    CardNetwork,
    GooglePaymentTransactionConfig,
    InvalidTransactionConfig,
    PaymentType,
    build_order_options,
    build_payment_options,
    parse_transaction_config,
)


def test_parse_action_payment_config_from_camel_case():
    config = parse_transaction_config(
        {"type": "BANK", "displayName": "Checking-1234", "deliveryAddressRequired": True}
    )

    assert isinstance(config, ActionPaymentTransactionConfig)
    assert config.display_name == "Checking-1234"
    assert config.delivery_address_required is True
    assert build_payment_options(config) == {
        "actionProvidedOptions": {"paymentType": "BANK", "displayName": "Checking-1234"}
    }


def test_parse_google_payment_config_with_tokenization():
    config = parse_transaction_config(
        {
            "card_networks": [CardNetwork.VISA, "AMEX"],
            "prepaid_card_disallowed": True,
            "tokenization_parameters": {"gateway": "braintree"},
        }
    )

    assert isinstance(config, GooglePaymentTransactionConfig)
    assert build_payment_options(config) == {
        "googleProvidedOptions": {
            "supportedCardNetworks": ["VISA", "AMEX"],
            "prepaidCardDisallowed": True,
            "tokenizationParameters": {
                "tokenizationType": "PAYMENT_GATEWAY",
                "parameters": {"gateway": "braintree"},
            },
        }
    }


def test_typed_configs_pass_through():
    config = ActionPaymentTransactionConfig(type=PaymentType.GIFT_CARD, display_name="Gift")
    assert parse_transaction_config(config) is config
    assert parse_transaction_config(None) is None


def test_mixed_payment_styles_are_rejected():
    with pytest.raises(InvalidTransactionConfig, match="Invalid transaction configuration"):
        parse_transaction_config({"type": "BANK", "displayName": "x", "cardNetworks": ["VISA"]})


def test_validation_errors_are_wrapped():
    with pytest.raises(InvalidTransactionConfig):
        parse_transaction_config({"type": "CASH", "displayName": "x"})


def test_order_options_include_delivery_and_customer_info():
    config = parse_transaction_config(
        {"deliveryAddressRequired": True, "customerInfoOptions": {"customerInfoProperties": ["EMAIL"]}}
    )

    assert build_order_options(config) == {
        "requestDeliveryAddress": True,
        "customerInfoOptions": {"customerInfoProperties": ["EMAIL"]},
    }
    assert build_order_options(parse_transaction_config({})) is None
    assert build_order_options(None) is None
