"""
Batch geocoding with fixed-size concurrent batches and a pause between them
to stay under the upstream rate limit
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor

from utils.error_handling import UpstreamError
from utils.geocoding import configured_lookup

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY = 1.0  # seconds


class BatchGeocoder:
    """Geocode many inputs, isolating per-item failures"""

    def __init__(self, lookup, batch_size=DEFAULT_BATCH_SIZE, delay=DEFAULT_BATCH_DELAY, sleep=time.sleep):
        """
        Args:
            lookup: Callable taking one query string and returning
                {'latitude', 'longitude'}; raises on failure
            batch_size: Number of lookups run concurrently
            delay: Seconds to wait between batches
            sleep: Sleep function, replaceable in tests
        """
        if batch_size < 1:
            raise ValueError('batch_size must be at least 1')
        self.lookup = lookup
        self.batch_size = batch_size
        self.delay = delay
        self.sleep = sleep

    @classmethod
    def from_config(cls, config):
        """Geocoder using the Google lookup with the app's key, batch size and delay"""
        return cls(
            configured_lookup(config),
            batch_size=config.get('GEOCODE_BATCH_SIZE', DEFAULT_BATCH_SIZE),
            delay=config.get('GEOCODE_BATCH_DELAY', DEFAULT_BATCH_DELAY),
        )

    def _resolve(self, query):
        try:
            return True, self.lookup(query)
        except UpstreamError as e:
            return False, e.message
        except Exception as e:
            # One bad item must never abort the batch
            logger.warning(f"Unexpected geocoding failure for '{query}': {str(e)}")
            return False, str(e) or type(e).__name__

    def run(self, items, suffix=None):
        """
        Geocode items batch by batch

        Args:
            items: List of address or zipcode strings
            suffix: Optional text appended to each query (e.g. ', USA');
                results stay keyed by the original item

        Returns:
            dict with results, errors, totalProcessed, successCount, errorCount
        """
        results = {}
        errors = {}
        success_count = 0
        error_count = 0

        for start in range(0, len(items), self.batch_size):
            batch = items[start:start + self.batch_size]
            queries = [f"{item}{suffix}" if suffix else item for item in batch]

            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                outcomes = list(executor.map(self._resolve, queries))

            for item, (ok, value) in zip(batch, outcomes):
                if ok:
                    results[item] = value
                    success_count += 1
                else:
                    logger.warning(f"Error geocoding '{item}': {value}")
                    errors[item] = value
                    error_count += 1

            if start + self.batch_size < len(items) and self.delay > 0:
                self.sleep(self.delay)

        logger.info(f"Batch geocoding finished: {success_count} succeeded, {error_count} failed")
        return {
            'results': results,
            'errors': errors,
            'totalProcessed': len(items),
            'successCount': success_count,
            'errorCount': error_count,
        }
