import math
from datetime import datetime, timezone
from decimal import Decimal, ROUND_DOWN

# 24小时最多 4.8，线性增长
DAILY_MAX = Decimal('4.8')
MAX_DURATION = 86400  # 24小时
RATE_PER_SECOND = DAILY_MAX / MAX_DURATION  # 仅用于前端展示

# Numeric(36, 18)
REWARD_QUANT = Decimal('1e-18')


def utcnow():
    """Server clock, naive UTC (the way timestamps are stored)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def elapsed_seconds(start_time, now):
    """Whole seconds between start_time and now, never negative."""
    delta = (now - start_time).total_seconds()
    return max(0, math.floor(delta))


def calculate_reward(start_time, now):
    """
    计算挖矿奖励，持续24小时

    reward = min(elapsed, 86400) / 86400 * DAILY_MAX

    :param start_time: 本次挖矿开始时间（last_start），None 表示无可领取
    :param now: 服务器时间
    :return: Decimal, 范围 [0, DAILY_MAX]
    """
    if start_time is None:
        return Decimal('0')

    capped = min(elapsed_seconds(start_time, now), MAX_DURATION)
    reward = Decimal(capped) * DAILY_MAX / Decimal(MAX_DURATION)
    return reward.quantize(REWARD_QUANT, rounding=ROUND_DOWN)


def project_balance(balance, mining_active, last_start, now):
    """
    Live balance estimate for display. Advisory only: the value credited
    by claim is computed server-side at claim time.
    """
    balance = Decimal(balance or 0)
    if not mining_active:
        return balance
    return balance + calculate_reward(last_start, now)


def format_amount(amount):
    """Plain decimal string for JSON: 2.400000000000000000 -> '2.4', 0E-18 -> '0'."""
    return format(Decimal(amount or 0).normalize(), 'f')
