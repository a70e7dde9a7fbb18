import time
from decimal import Decimal

import pytest

from hlconnector.risk_manager import (
    CircuitBreaker,
    CircuitBreakerTriggered,
    CircuitBreakerType,
    ExposureLimit,
    LimitExceeded,
    OrderRiskError,
    PositionLimit,
    RiskManager,
    RiskSeverity,
    VolatilityLimit,
)
from hlconnector.types import NewOrder, OrderType, RiskLimits, Side


def drain(manager):
    events = []
    while not manager.events.empty():
        events.append(manager.events.get_nowait())
    return events


def order(side=Side.BUY, price="10", size="1", symbol="HYPE"):
    return NewOrder(symbol, side, OrderType.LIMIT, Decimal(price), Decimal(size))


def position_limit(max_net="10"):
    return PositionLimit("HYPE", Decimal(max_net), Decimal(max_net), Decimal(max_net))


def breaker(threshold="2", cooldown=60.0, kind=CircuitBreakerType.MAX_TRADES_PER_MINUTE):
    return CircuitBreaker("cb1", "HYPE", kind, Decimal(threshold), cooldown)


def test_order_within_position_limit_passes_and_beyond_raises():
    manager = RiskManager()
    manager.add_position_limit("HYPE", position_limit("10"))
    manager.check_order_risk(order(size="10"))
    with pytest.raises(OrderRiskError, match="position limit"):
        manager.check_order_risk(order(size="11"))


def test_sell_checks_against_short_side():
    manager = RiskManager()
    manager.add_position_limit("HYPE", position_limit("10"))
    manager.update_position("HYPE", Decimal("-5"), Decimal("1"))
    with pytest.raises(OrderRiskError):
        manager.check_order_risk(order(side=Side.SELL, size="6"))
    manager.check_order_risk(order(side=Side.BUY, size="6"))


def test_exposure_limit_rejects_large_notional():
    manager = RiskManager()
    manager.add_exposure_limit("HYPE", ExposureLimit("HYPE", Decimal("100"), Decimal("5")))
    manager.check_order_risk(order(price="10", size="10"))
    with pytest.raises(OrderRiskError, match="exposure limit"):
        manager.check_order_risk(order(price="10", size="11"))


def test_daily_loss_limit_blocks_orders_and_emits_event():
    manager = RiskManager()
    manager.add_risk_limits("HYPE", RiskLimits())
    manager.update_pnl(Decimal("-1001"))
    events = drain(manager)
    assert len(events) == 1
    assert events[0].limit_type == "daily_loss"
    assert events[0].limit_value == -RiskLimits().max_daily_loss
    assert events[0].severity is RiskSeverity.CRITICAL
    with pytest.raises(OrderRiskError, match="Daily loss"):
        manager.check_order_risk(order())


def test_update_pnl_updates_metrics():
    manager = RiskManager()
    manager.update_pnl(Decimal("5"))
    manager.update_pnl(Decimal("-2"))
    assert manager.risk_metrics().total_pnl == manager.daily_pnl
    assert drain(manager) == []


def test_update_position_sets_long_and_short():
    manager = RiskManager()
    manager.add_position_limit("HYPE", position_limit("10"))
    manager.update_position("HYPE", Decimal("4"), Decimal("1"))
    limit = manager.position_limits["HYPE"]
    assert (limit.current_long, limit.current_short) == (Decimal("4"), Decimal(0))
    manager.update_position("HYPE", Decimal("-3"), Decimal("1"))
    assert (limit.current_long, limit.current_short) == (Decimal(0), Decimal("3"))
    assert limit.current_net == Decimal("-3")


def test_position_breach_emits_critical_event():
    manager = RiskManager()
    manager.add_position_limit("HYPE", position_limit("10"))
    manager.update_position("HYPE", Decimal("-12"), Decimal("1"))
    events = drain(manager)
    assert [e.limit_type for e in events] == ["position_size"]
    assert events[0].current_value == Decimal("12")


def test_exposure_and_leverage_breaches():
    manager = RiskManager()
    manager.add_exposure_limit("HYPE", ExposureLimit("HYPE", Decimal("10"), Decimal("0")))
    manager.update_position("HYPE", Decimal("5"), Decimal("4"))
    events = drain(manager)
    assert [e.limit_type for e in events] == ["exposure", "leverage"]
    limit = manager.exposure_limits["HYPE"]
    assert limit.current_notional == Decimal("5") * Decimal("4")
    assert limit.current_leverage > 0


def test_volatility_breaches():
    manager = RiskManager()
    manager.add_volatility_limit("HYPE", VolatilityLimit("HYPE", 50, 100))
    manager.update_volatility("HYPE", 60, 150, Decimal("10"))
    events = drain(manager)
    assert [e.limit_type for e in events] == ["spread", "price_change"]
    assert all(isinstance(e, LimitExceeded) and e.severity is RiskSeverity.HIGH for e in events)
    manager.update_volatility("HYPE", 50, 100, Decimal("10"))
    assert drain(manager) == []
    assert manager.volatility_limits["HYPE"].last_price == Decimal("10")


def test_trade_count_trips_breaker_after_threshold():
    manager = RiskManager()
    manager.add_circuit_breaker(breaker("2"))
    manager.update_trade_count()
    manager.update_trade_count()
    assert not manager.is_circuit_breaker_active("HYPE")
    manager.update_trade_count()
    events = drain(manager)
    assert len(events) == 1 and isinstance(events[0], CircuitBreakerTriggered)
    assert events[0].breaker_id == "cb1"
    assert manager.is_circuit_breaker_active("HYPE")
    with pytest.raises(OrderRiskError, match="cb1"):
        manager.check_order_risk(order())


def test_fractional_threshold_counts_as_zero():
    manager = RiskManager()
    manager.add_circuit_breaker(breaker("2.5"))
    manager.update_trade_count()
    assert manager.is_circuit_breaker_active("HYPE")


def test_breaker_of_other_type_is_not_tripped_by_trades():
    manager = RiskManager()
    manager.add_circuit_breaker(breaker("0", kind=CircuitBreakerType.MAX_EXPOSURE))
    manager.update_trade_count()
    assert manager.daily_trades == 1
    assert not manager.is_circuit_breaker_active("HYPE")


def test_breaker_cooldown_expires():
    cb = breaker(cooldown=5.0)
    cb.is_triggered = True
    cb.triggered_at = 100.0
    assert cb.is_active(104.0)
    assert not cb.is_active(105.0)


def test_reset_daily_metrics_clears_state():
    manager = RiskManager()
    manager.add_circuit_breaker(breaker("0"))
    manager.update_trade_count()
    manager.update_pnl(Decimal("-3"))
    manager.reset_daily_metrics()
    assert manager.daily_pnl == 0
    assert manager.daily_trades == 0
    assert not manager.is_circuit_breaker_active("HYPE")
    assert manager.circuit_breakers[0].triggered_at is None


def test_reset_if_due_waits_a_day():
    manager = RiskManager()
    manager.update_pnl(Decimal("7"))
    start = manager.last_reset
    assert not manager.reset_if_due(start + 3600)
    assert manager.daily_pnl == Decimal("7")
    assert manager.reset_if_due(start + 86400)
    assert manager.daily_pnl == 0
    assert manager.last_reset == start + 86400


def test_risk_score_weights_and_cap():
    manager = RiskManager()
    assert manager.risk_score("HYPE") == 0
    manager.add_position_limit("HYPE", position_limit("10"))
    manager.update_position("HYPE", Decimal("10"), Decimal("1"))
    assert manager.risk_score("HYPE") == Decimal(40)
    manager.update_position("HYPE", Decimal("1000"), Decimal("1"))
    assert manager.risk_score("HYPE") == Decimal(100)


def test_daily_reset_timer_resets_when_due():
    manager = RiskManager()
    manager.update_pnl(Decimal("9"))
    manager.last_reset = time.monotonic() - 90000
    manager.start_daily_reset_timer(0.01)
    try:
        deadline = time.monotonic() + 2
        while manager.daily_pnl != 0 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        manager.stop_daily_reset_timer()
    assert manager.daily_pnl == 0
    assert time.monotonic() - manager.last_reset < 10