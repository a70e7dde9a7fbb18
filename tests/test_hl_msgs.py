import pytest

from hlconnector.hl_msgs import OrderBookData, PriceLevel, TobMsg

RAW = {
    "channel": "l2Book",
    "data": {
        "coin": "HYPE",
        "time": 1700,
        "levels": [
            [{"px": "100", "sz": "2", "n": 3}, {"px": "99", "sz": "1", "n": 1}],
            [{"px": "101", "sz": "1", "n": 1}],
        ],
    },
}


def test_round_trip():
    msg = TobMsg.from_dict(RAW)
    assert msg.to_dict() == RAW
    assert msg.data.coin == "HYPE"


def test_top_of_book():
    data = TobMsg.from_dict(RAW).data
    bid, ask = data.top_of_book()
    assert bid == PriceLevel("100", "2", 3)
    assert ask == PriceLevel("101", "1", 1)


def test_top_of_book_missing_side():
    data = OrderBookData("HYPE", 5, [[PriceLevel("1", "1", 1)]])
    assert data.top_of_book() is None
    assert OrderBookData("HYPE", 5, [[PriceLevel("1", "1", 1)], []]).top_of_book() is None


def test_generate_id():
    data = TobMsg.from_dict(RAW).data
    assert data.generate_id() == (
        '1700Some((PriceLevel { px: "100", sz: "2", n: 3 }, '
        'PriceLevel { px: "101", sz: "1", n: 1 }))'
    )


def test_generate_id_without_book():
    assert OrderBookData("HYPE", 1700, []).generate_id() == "1700None"


@pytest.mark.parametrize(
    "bad",
    [
        {"px": "1", "sz": "1"},
        {"px": 1, "sz": "1", "n": 1},
        {"px": "1", "sz": "1", "n": -1},
        "nope",
    ],
)
def test_invalid_price_level(bad):
    with pytest.raises(ValueError):
        PriceLevel.from_dict(bad)


def test_invalid_message():
    with pytest.raises(ValueError):
        TobMsg.from_dict({"channel": "l2Book"})