"""Tier selection with asymmetric hysteresis.

Rising temperatures move a channel up immediately. Falling temperatures
only move it down once the reading has dropped ``hysteresis`` degrees
below the threshold that promoted the current tier.

With thresholds [50, 60, 70, 80] and a margin of 3, a channel at tier 1
that sees 59, 60, 59, 58, 57, 56 goes to tiers 1, 2, 2, 2, 1, 1.
"""

from pifand.base.config import ChannelConfig


def target_tier(temp: int, channel: ChannelConfig) -> int:
    """Return the tier a temperature reaches, ignoring hysteresis.

    A temperature equal to a threshold reaches that threshold's tier.
    """
    for index in range(len(channel.thresholds) - 1, -1, -1):
        if temp >= channel.thresholds[index]:
            return index + 1
    return 0


def promoting_threshold(tier: int, channel: ChannelConfig) -> int:
    """Return the threshold that promotes a channel into ``tier``.

    Tier 0 has no promoting threshold and reports 0.
    """
    if tier <= 0:
        return 0
    return channel.thresholds[min(tier, len(channel.thresholds)) - 1]


def next_tier(
    temp: int, current_tier: int, channel: ChannelConfig, hysteresis: int
) -> int:
    """Return the tier to apply for this tick.

    Args:
        temp: Temperature used for this tick (C)
        current_tier: Tier currently applied to the actuator
        channel: Channel whose thresholds apply
        hysteresis: Margin (C) below the current tier's threshold that
            must be reached before descending

    Returns:
        The new tier, which may equal ``current_tier``

    """
    target = target_tier(temp, channel)
    if target >= current_tier:
        return target
    if temp > promoting_threshold(current_tier, channel) - hysteresis:
        return current_tier
    return target
