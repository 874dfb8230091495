from livesync.feeds.api_sports import ApiSportsFeed, parse_fixture

__all__ = [
    "ApiSportsFeed",
    "parse_fixture",
]
