import structlog

logger = structlog.get_logger(__name__)

RECOMMENDATION_COUNT = 3


def _rank(channel):
    # lowest score first, lower channel number wins ties
    return (channel.congestion_score, channel.channel_number)


def best_zll_channel(scored):
    zll = [c for c in scored if c.is_zll_recommended]
    if not zll:
        return None
    return min(zll, key=_rank)


def select_recommendations(scored):
    """
    Pick the channels to surface as recommended:
    - the last pick is always the least congested ZLL channel
    - the others are the best channels overall, excluding that ZLL pick

    Returns [] when there is nothing to choose from.
    """
    scored = list(scored or [])
    if not scored:
        return []

    best_zll = best_zll_channel(scored)
    if best_zll is None:
        logger.warning("no_zll_channel_scored", channels=[c.channel_number for c in scored])
        return []

    others = sorted(
        (c for c in scored if c.channel_number != best_zll.channel_number),
        key=_rank,
    )
    return others[: RECOMMENDATION_COUNT - 1] + [best_zll]


def recommended_channel_numbers(recommendations):
    return frozenset(c.channel_number for c in recommendations)
