from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from tokenomy.exchange.constants import normalize_pair_name
from tokenomy.exchange.models import (
    ListTradeParams,
    MarketDepths,
    Trade,
    TradeRequest,
    TradeResponse,
    User,
)
from tokenomy.utils.exceptions import RequestValidationError


def test_normalize_pair_name_variants() -> None:
    assert normalize_pair_name("ten_btc") == "ten_btc"
    assert normalize_pair_name("TEN-BTC") == "ten_btc"
    assert normalize_pair_name(" Eth_Btc ") == "eth_btc"


@pytest.mark.parametrize("pair", ["", "tenbtc", "ten_btc_idk", "_btc", "ten_"])
def test_normalize_pair_name_rejects_invalid(pair) -> None:
    with pytest.raises(RequestValidationError) as exc:
        normalize_pair_name(pair)
    assert exc.value.name == "ERR_INVALID_PAIR"
    assert exc.value.code == 400


def test_trade_request_pack_limit() -> None:
    request = TradeRequest(pair="TEN-BTC", amount="10", price=0.00000016, post_only=True)

    params, ws_params = request.pack()

    assert params == {
        "trade_method": "limit",
        "pair": "ten_btc",
        "amount": "10",
        "price": "0.00000016",
        "post_only": "true",
    }
    assert ws_params == {
        "method": "limit",
        "pair": "ten_btc",
        "amount": "10",
        "price": "0.00000016",
        "post_only": True,
    }


def test_trade_request_pack_market_ignores_price() -> None:
    request = TradeRequest(pair="ten_btc", amount=Decimal("5.5"), price="1", method="MARKET", type="buy")

    params, ws_params = request.pack()

    assert params == {
        "trade_method": "market",
        "pair": "ten_btc",
        "amount": "5.5",
        "post_only": "false",
    }
    assert ws_params["type"] == "buy"
    assert "price" not in ws_params


def test_trade_request_time_in_force() -> None:
    params, ws_params = TradeRequest(pair="ten_btc", amount=1, price=2, time_in_force="fok").pack()

    assert params["time_in_force"] == "FOK"
    assert ws_params["time_in_force"] == "FOK"


def test_trade_request_empty_method_defaults_to_limit() -> None:
    with pytest.raises(RequestValidationError) as exc:
        TradeRequest(pair="ten_btc", amount="1", method="").pack()
    assert exc.value.name == "ERR_INVALID_PRICE"


@pytest.mark.parametrize(
    "kwargs,error_name",
    [
        ({"method": "stop"}, "ERR_INVALID_TRADE_METHOD"),
        ({"amount": 0}, "ERR_INVALID_AMOUNT"),
        ({"amount": "-1"}, "ERR_INVALID_AMOUNT"),
        ({"amount": "lots"}, "ERR_INVALID_AMOUNT"),
        ({"amount": None}, "ERR_INVALID_AMOUNT"),
        ({"price": "0"}, "ERR_INVALID_PRICE"),
        ({"amount": "0.000000001"}, "ERR_INVALID_AMOUNT"),
        ({"amount": 4e-9}, "ERR_INVALID_AMOUNT"),
        ({"price": "0.000000004"}, "ERR_INVALID_PRICE"),
        ({"type": "hold"}, "ERR_INVALID_TRADE_TYPE"),
        ({"pair": "tenbtc"}, "ERR_INVALID_PAIR"),
    ],
)
def test_trade_request_validation(kwargs, error_name) -> None:
    fields = {"pair": "ten_btc", "amount": "1", "price": "0.5"}
    fields.update(kwargs)

    with pytest.raises(RequestValidationError) as exc:
        TradeRequest(**fields).pack()
    assert exc.value.name == error_name


def test_list_trade_params_defaults() -> None:
    assert ListTradeParams(pair="TEN_BTC").pack() == {"pair": "ten_btc", "sort": "desc", "limit": "100"}


@pytest.mark.parametrize("limit,expected", [(20, "20"), (100, "100"), (0, "100"), (-5, "100"), (500, "100")])
def test_list_trade_params_clamps_limit(limit, expected) -> None:
    assert ListTradeParams(pair="ten_btc", limit=limit).pack()["limit"] == expected


def test_list_trade_params_filters() -> None:
    params = ListTradeParams(
        pair="ten_btc",
        sort="ASC",
        offset=10,
        id_after=5,
        id_before=0,
        time_after=1574423788,
    ).pack()

    assert params == {
        "pair": "ten_btc",
        "sort": "asc",
        "limit": "100",
        "offset": "10",
        "id_after": "5",
        "time_after": "1574423788",
    }


def test_list_trade_params_rejects_unknown_sort() -> None:
    with pytest.raises(RequestValidationError) as exc:
        ListTradeParams(pair="ten_btc", sort="up").pack()
    assert exc.value.name == "ERR_INVALID_SORT_BY"


def test_market_depths_lookup_by_price() -> None:
    depths = MarketDepths.model_validate(
        {
            "asks": [{"amount": "120", "price": "0.00001600"}, {"amount": "3", "price": "0.000017"}],
            "bids": [{"amount": "50", "price": "0.0000155"}],
        }
    )

    ask = depths.get_ask_by_price("0.000016")
    assert ask is not None
    assert ask.amount == Decimal("120")
    assert depths.get_bid_by_price(Decimal("0.0000155")).amount == Decimal("50")
    assert depths.get_ask_by_price("0.0000155") is None
    assert depths.get_bid_by_price(1) is None


def test_trade_serializes_canonical_numbers() -> None:
    trade = Trade.model_validate(
        {
            "id": 1,
            "pair": "ten_btc",
            "type": "sell",
            "price": "0.000000016",
            "base_amount": 0.1,
            "submit_time": 1574423788,
        }
    )

    dumped = trade.model_dump_json(exclude_none=True)

    assert '"price":"0.00000002"' in dumped
    assert '"base_amount":"0.1"' in dumped
    assert trade.submitted_at == datetime(2019, 11, 22, 11, 56, 28, tzinfo=timezone.utc)
    assert trade.finished_at is None


def test_trade_response_nested_models() -> None:
    response = TradeResponse.model_validate(
        {
            "order": {"id": 9, "type": "buy", "price": "0.00000016", "remain_coin": "100"},
            "user": {"balances": {"btc": "0.5"}, "frozen_balances": {"btc": "0.0000160"}},
            "deals": [{"id": 3, "trade_time": 1574423788, "amount": "0.000016", "price": "0.00000016"}],
        }
    )

    assert response.order is not None and response.order.id == 9
    assert response.user is not None and response.user.frozen_balances["btc"] == Decimal("0.000016")
    assert response.deals[0].price == Decimal("0.00000016")


def test_user_assets_copy_is_independent() -> None:
    user = User.model_validate({"email": "user@example.com", "balances": {"btc": "0.5"}, "wallets": {"btc": "addr"}})

    clone = user.model_copy(deep=True)
    clone.balances["btc"] = Decimal("0")

    assert user.available("BTC") == Decimal("0.5")
    assert user.available("eth") == Decimal(0)
    assert clone.available("btc") == Decimal("0")


def test_trade_request_amount_rounding_up_to_precision_is_kept() -> None:
    params, _ = TradeRequest(pair="ten_btc", amount="0.000000005", price="0.000000016").pack()

    assert params["amount"] == "0.00000001"
    assert params["price"] == "0.00000002"
