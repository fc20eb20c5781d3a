"""
Unit tests for balance arithmetic and the player grant gate.
"""

import logging

import pytest

from gamevault.modules.economy.service import LedgerService, apply_credit_delta
from gamevault.modules.shared.exceptions import ForbiddenError, InsufficientFundsError


class TestApplyCreditDelta:
    """Clamping and non-negativity."""

    def test_simple_add_and_debit(self):
        assert apply_credit_delta(100, 25, 1_000) == 125
        assert apply_credit_delta(100, -100, 1_000) == 0

    def test_negative_result_raises(self):
        with pytest.raises(InsufficientFundsError) as exc_info:
            apply_credit_delta(10, -11, 1_000)

        assert exc_info.value.required == 11
        assert exc_info.value.current == 10

    def test_clamps_to_max_balance(self):
        assert apply_credit_delta(990, 50, 1_000) == 1_000

    def test_balance_above_cap_is_not_reduced_by_a_grant(self):
        # A lowered cap never takes credits away on an add
        assert apply_credit_delta(1_500, 10, 1_000) == 1_500

    def test_debit_above_cap_still_applies(self):
        assert apply_credit_delta(1_500, -100, 1_000) == 1_400


class TestLedgerGate:
    """Config gate on player-initiated grants."""

    async def test_add_forbidden_when_disabled(self, mocker, mock_event_bus):
        config = mocker.MagicMock()
        config.get = mocker.MagicMock(
            side_effect=lambda key, default=None: False
            if key == "economy.allow_player_credit_grant"
            else default
        )
        transaction = mocker.patch(
            "gamevault.modules.economy.service.DatabaseService.get_transaction"
        )

        service = LedgerService(config, mock_event_bus, logging.getLogger("test.ledger"))

        with pytest.raises(ForbiddenError):
            await service.add("player-1", 10)

        transaction.assert_not_called()
        mock_event_bus.publish.assert_not_called()

    def test_limits_follow_config(self, mock_config_manager, mock_event_bus):
        service = LedgerService(mock_config_manager, mock_event_bus, logging.getLogger("test.ledger"))

        assert service.max_balance == 1_000_000_000
        assert service.max_transaction_amount == 1_000_000_000
