#!/usr/bin/env python3
"""
Odds Fetcher - API Client for The Odds API

This module provides the OddsFetcher class for fetching fixture odds
from The Odds API (https://the-odds-api.com/).

Features:
- Rate limiting to stay within free tier (500 requests/month)
- Response caching to minimize API calls
- Automatic retry with exponential backoff
- Conversion to FixtureOdds records for the prediction core

Usage:
    from data_collection.odds_fetcher import OddsFetcher

    fetcher = OddsFetcher()  # Uses THE_ODDS_API_KEY env var
    fixtures = fetcher.fetch_fixtures(["soccer_epl", "soccer_spain_la_liga"])
"""

import json
import os
import time
import hashlib
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Any
import urllib.request
import urllib.error
import urllib.parse

from analysis.odds_analyzer import PredictionError

from .odds_data import FixtureOdds

logger = logging.getLogger(__name__)

# Default paths
BASE_DIR = Path(__file__).parent.parent
CACHE_DIR = BASE_DIR / "data" / "cache" / "odds_api"

# API Configuration
BASE_URL = "https://api.the-odds-api.com/v4"
DEFAULT_SPORT = "soccer_epl"
DEFAULT_REGIONS = "uk"
DEFAULT_MARKETS = "h2h,totals"

# Rate limiting configuration (free tier: 500 requests/month)
MAX_MONTHLY_REQUESTS = 500
MAX_DAILY_REQUESTS = 15  # ~450/month, leaves buffer
REQUEST_INTERVAL_SECONDS = 5  # Minimum time between consecutive calls
CACHE_DURATION_HOURS = 6  # Re-use cached data within window
REQUEST_TIMEOUT_SECONDS = 30

# Retry configuration
MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 1


class UpstreamFetchError(Exception):
    """Raised when the odds API cannot supply data for this cycle."""
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitExceeded(UpstreamFetchError):
    """Raised when rate limit is exceeded."""
    pass


class OddsFetcher:
    """
    API client for The Odds API.

    Provides methods for fetching head-to-head and totals odds for
    football fixtures, with built-in rate limiting, caching, and error
    handling.

    Attributes:
        api_key: The Odds API key
        cache_dir: Directory for cached responses
        last_request_time: Timestamp of last API request
        daily_request_count: Number of requests made today
    """

    def __init__(
        self,
        api_key: str = None,
        cache_dir: Path = None,
        regions: str = DEFAULT_REGIONS,
        bookmaker_strategy: str = "first",
    ):
        """
        Initialize the OddsFetcher with API key and cache directory.

        Args:
            api_key: The Odds API key. If not provided, reads from
                     THE_ODDS_API_KEY environment variable.
            cache_dir: Directory for cached responses. Defaults to
                       data/cache/odds_api.
            regions: Comma-separated bookmaker regions (default: "uk")
            bookmaker_strategy: "first" or "best", see FixtureOdds.from_api_event

        Raises:
            ValueError: If no API key is provided or found in environment.
        """
        self.api_key = api_key or os.environ.get("THE_ODDS_API_KEY")
        if not self.api_key:
            raise ValueError(
                "API key required. Set THE_ODDS_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.cache_dir = Path(cache_dir) if cache_dir else CACHE_DIR
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.regions = regions
        self.bookmaker_strategy = bookmaker_strategy

        self.last_request_time: Optional[float] = None
        self._load_request_count()

        logger.info(f"OddsFetcher initialized. Daily requests: {self.daily_request_count}/{MAX_DAILY_REQUESTS}")

    def _load_request_count(self) -> None:
        """Load the daily request count from cache file."""
        count_file = self.cache_dir / "request_count.json"
        today = datetime.utcnow().strftime("%Y-%m-%d")
        self.daily_request_count = 0

        if count_file.exists():
            try:
                with open(count_file, 'r') as f:
                    data = json.load(f)
                if data.get("date") == today:
                    self.daily_request_count = data.get("count", 0)
            except (OSError, ValueError) as e:
                logger.warning(f"Error loading request count: {e}")

    def _save_request_count(self) -> None:
        """Save the daily request count to cache file."""
        count_file = self.cache_dir / "request_count.json"
        today = datetime.utcnow().strftime("%Y-%m-%d")

        try:
            with open(count_file, 'w') as f:
                json.dump({"date": today, "count": self.daily_request_count}, f)
        except OSError as e:
            logger.warning(f"Error saving request count: {e}")

    def _get_cache_key(self, endpoint: str, params: Dict[str, str]) -> str:
        """Generate a cache key for the given request."""
        # Remove API key from params for cache key
        cache_params = {k: v for k, v in params.items() if k != "apiKey"}
        key_string = f"{endpoint}:{json.dumps(cache_params, sort_keys=True)}"
        return hashlib.md5(key_string.encode()).hexdigest()

    def _get_cached_response(self, cache_key: str) -> Optional[Any]:
        """
        Retrieve a cached response if it exists and is still valid.

        Args:
            cache_key: The cache key for the request

        Returns:
            Cached response data if valid, None otherwise
        """
        cache_file = self.cache_dir / f"{cache_key}.json"

        if not cache_file.exists():
            return None

        try:
            with open(cache_file, 'r') as f:
                cached = json.load(f)

            cache_time = datetime.fromisoformat(cached.get("cached_at", "2000-01-01"))
            cache_age = datetime.utcnow() - cache_time

            if cache_age < timedelta(hours=CACHE_DURATION_HOURS):
                logger.debug(f"Cache hit for {cache_key}")
                return cached.get("data")

            logger.debug(f"Cache expired for {cache_key}")
            return None

        except (OSError, ValueError) as e:
            logger.warning(f"Error reading cache: {e}")
            return None

    def _save_to_cache(self, cache_key: str, data: Any) -> None:
        """Save response data to cache."""
        cache_file = self.cache_dir / f"{cache_key}.json"

        try:
            with open(cache_file, 'w') as f:
                json.dump({
                    "cached_at": datetime.utcnow().isoformat(),
                    "data": data
                }, f)
            logger.debug(f"Cached response for {cache_key}")
        except OSError as e:
            logger.warning(f"Error saving to cache: {e}")

    def _enforce_rate_limit(self) -> None:
        """
        Enforce rate limiting before making a request.

        Raises:
            RateLimitExceeded: If daily request limit is reached
        """
        if self.daily_request_count >= MAX_DAILY_REQUESTS:
            raise RateLimitExceeded(
                f"Daily request limit reached ({MAX_DAILY_REQUESTS}). "
                "Try again tomorrow or use cached data."
            )

        if self.last_request_time is not None:
            elapsed = time.time() - self.last_request_time
            if elapsed < REQUEST_INTERVAL_SECONDS:
                sleep_time = REQUEST_INTERVAL_SECONDS - elapsed
                logger.debug(f"Rate limiting: sleeping {sleep_time:.1f}s")
                time.sleep(sleep_time)

    def _make_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, str]] = None,
        use_cache: bool = True
    ) -> Any:
        """
        Make a request to The Odds API with caching and retry logic.

        Args:
            endpoint: API endpoint path (e.g., "/sports/soccer_epl/odds")
            params: Query parameters (api key added automatically)
            use_cache: Whether to use cached responses

        Returns:
            Decoded JSON response

        Raises:
            UpstreamFetchError: If API returns an error
            RateLimitExceeded: If rate limit is exceeded
        """
        params = dict(params or {})
        params["apiKey"] = self.api_key

        cache_key = self._get_cache_key(endpoint, params)
        if use_cache:
            cached = self._get_cached_response(cache_key)
            if cached is not None:
                return cached

        self._enforce_rate_limit()

        url = f"{BASE_URL}{endpoint}?{urllib.parse.urlencode(params)}"

        last_error = None
        for attempt in range(MAX_RETRIES):
            try:
                logger.info(f"API request: {endpoint} (attempt {attempt + 1}/{MAX_RETRIES})")

                request = urllib.request.Request(
                    url,
                    headers={"Accept": "application/json"}
                )

                with urllib.request.urlopen(request, timeout=REQUEST_TIMEOUT_SECONDS) as response:
                    self.last_request_time = time.time()
                    self.daily_request_count += 1
                    self._save_request_count()

                    data = json.loads(response.read().decode())

                    remaining = response.headers.get("x-requests-remaining")
                    if remaining:
                        logger.info(f"API requests remaining this month: {remaining}")

                    self._save_to_cache(cache_key, data)
                    return data

            except urllib.error.HTTPError as e:
                last_error = e
                status_code = e.code

                if status_code == 401:
                    raise UpstreamFetchError("Invalid API key", status_code=401)
                elif status_code == 429:
                    raise RateLimitExceeded("API rate limit exceeded", status_code=429)
                elif status_code == 404:
                    raise UpstreamFetchError(f"Resource not found: {endpoint}", status_code=404)
                elif status_code >= 500:
                    backoff = INITIAL_BACKOFF_SECONDS * (2 ** attempt)
                    logger.warning(f"Server error {status_code}, retrying in {backoff}s")
                    time.sleep(backoff)
                else:
                    raise UpstreamFetchError(f"HTTP error {status_code}", status_code=status_code)

            except (urllib.error.URLError, TimeoutError) as e:
                last_error = e
                backoff = INITIAL_BACKOFF_SECONDS * (2 ** attempt)
                logger.warning(f"Network error: {e}, retrying in {backoff}s")
                time.sleep(backoff)

            except ValueError as e:
                logger.error(f"Malformed API response: {e}")
                raise UpstreamFetchError(f"Malformed API response: {e}")

        raise UpstreamFetchError(f"Request failed after {MAX_RETRIES} attempts: {last_error}")

    def fetch_upcoming_matches(
        self,
        sport: str = DEFAULT_SPORT,
        regions: Optional[str] = None,
        markets: str = DEFAULT_MARKETS,
        use_cache: bool = True
    ) -> List[Dict[str, Any]]:
        """
        Fetch upcoming events with odds for a given league.

        Args:
            sport: Sport key (default: "soccer_epl" for Premier League)
            regions: Comma-separated region codes (default: the fetcher's regions)
            markets: Comma-separated market types (default: "h2h,totals")
            use_cache: Whether to use cached responses (default: True)

        Returns:
            List of event dictionaries. Each event contains id, sport_key,
            commence_time (ISO 8601), home_team, away_team and bookmakers.
        """
        endpoint = f"/sports/{sport}/odds"
        params = {
            "regions": regions or self.regions,
            "markets": markets,
            "oddsFormat": "decimal"
        }

        data = self._make_request(endpoint, params, use_cache=use_cache)
        if not isinstance(data, list):
            raise UpstreamFetchError(f"Unexpected response for {sport}: expected a list of events")

        logger.info(f"Fetched {len(data)} upcoming matches for {sport}")
        return data

    def parse_events(self, events: List[Dict[str, Any]]) -> List[FixtureOdds]:
        """
        Convert raw events to FixtureOdds, skipping incomplete ones.

        Args:
            events: Events as returned by fetch_upcoming_matches

        Returns:
            FixtureOdds for every event with a complete 1X2 market
        """
        fixtures = []
        for event in events:
            try:
                fixtures.append(
                    FixtureOdds.from_api_event(event, bookmaker_strategy=self.bookmaker_strategy)
                )
            except PredictionError as e:
                logger.warning(f"Skipping event {event.get('id', '?')}: {e}")
        return fixtures

    def fetch_fixtures(
        self,
        sports: Optional[List[str]] = None,
        use_cache: bool = True
    ) -> List[FixtureOdds]:
        """
        Fetch and parse fixtures for one or more leagues.

        Args:
            sports: Sport keys to fetch (default: [DEFAULT_SPORT])
            use_cache: Whether to use cached responses

        Returns:
            FixtureOdds for every usable event, in API order per league

        Raises:
            UpstreamFetchError: If any league request fails
        """
        fixtures: List[FixtureOdds] = []
        for sport in sports or [DEFAULT_SPORT]:
            events = self.fetch_upcoming_matches(sport=sport, use_cache=use_cache)
            fixtures.extend(self.parse_events(events))

        logger.info(f"Parsed {len(fixtures)} fixtures with complete odds")
        return fixtures

    def get_remaining_requests(self) -> Dict[str, int]:
        """
        Get information about remaining API requests.

        Returns:
            Dictionary with daily_used, daily_remaining, daily_limit and
            monthly_limit
        """
        return {
            "daily_used": self.daily_request_count,
            "daily_remaining": max(0, MAX_DAILY_REQUESTS - self.daily_request_count),
            "daily_limit": MAX_DAILY_REQUESTS,
            "monthly_limit": MAX_MONTHLY_REQUESTS
        }

    def clear_cache(self) -> int:
        """
        Clear all cached API responses.

        Returns:
            Number of cache files deleted
        """
        deleted = 0
        for cache_file in self.cache_dir.glob("*.json"):
            if cache_file.name != "request_count.json":
                try:
                    cache_file.unlink()
                    deleted += 1
                except OSError as e:
                    logger.warning(f"Error deleting cache file {cache_file}: {e}")

        logger.info(f"Cleared {deleted} cached responses")
        return deleted
