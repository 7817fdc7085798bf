"""
Translation module using the public Google Translate endpoint (deep-translator)
"""
import time

from deep_translator import GoogleTranslator
from deep_translator.exceptions import TooManyRequests

from lingotube.utils.proxy import proxies_dict, resolve_proxy

BACKOFF_LINEAR = 'linear'
BACKOFF_EXPONENTIAL = 'exponential'


def is_rate_limit_error(error):
    if isinstance(error, TooManyRequests):
        return True
    message = str(error)
    return 'TooManyRequests' in message or '429' in message


class Translator:
    def __init__(self, config, client=None, sleep=time.sleep):
        """
        Args:
            config: Config instance
            client: Object with a ``translate(text)`` method. Built lazily from
                deep-translator's GoogleTranslator when None.
            sleep: Delay function, replaced in tests
        """
        self.config = config
        self._client = client
        self.sleep = sleep

    @property
    def client(self):
        if self._client is None:
            proxy = resolve_proxy(self.config)
            self._client = GoogleTranslator(
                source=self.config.SOURCE_LANG,
                target=self.config.TARGET_LANG,
                proxies=proxies_dict(proxy),
            )
        return self._client

    def retry_delay(self, attempt, backoff):
        """Delay before retry number ``attempt`` (1-based)"""
        base = self.config.RETRY_BASE_DELAY
        if backoff == BACKOFF_EXPONENTIAL:
            return base * (3 ** attempt)
        return base * attempt

    def translate_text(self, text, backoff=BACKOFF_LINEAR):
        """
        Translate one subtitle line, retrying on failure

        Returns the original text if every attempt fails. Rate-limit errors
        are reported separately but retried up to the same bound.
        """
        if not text or not text.strip():
            return text

        retries = self.config.TRANSLATION_RETRIES
        for attempt in range(retries):
            if attempt > 0:
                delay = self.retry_delay(attempt, backoff)
                print(f"  Retry {attempt}, waiting {delay:.1f}s before retry...")
                self.sleep(delay)

            try:
                translated = self.client.translate(text)
                if translated:
                    return translated
                raise ValueError("empty translation")
            except Exception as e:
                if is_rate_limit_error(e):
                    print(f"  WARNING: Rate limit hit, attempt {attempt + 1}/{retries}")
                    if attempt == retries - 1:
                        print(f"  ERROR: Translation failed after all retries due to rate limiting")
                else:
                    print(f"  WARNING: Translation attempt {attempt + 1}/{retries} failed: {e}")
                    if attempt == retries - 1:
                        print(f"  ERROR: Translation failed: {e}")

        return text

    def translate_all_segments(self, segments, line_delay, backoff=BACKOFF_LINEAR, on_progress=None):
        """Translate every segment in order, one at a time, sets segment['text_zh']"""
        print(f"\n{'='*70}")
        print(f"STEP 3: TRANSLATION ({self.config.SOURCE_LANG} -> {self.config.TARGET_LANG})")
        print(f"{'='*70}")

        total = len(segments)
        print(f"Translating {total} segments...")

        total_start = time.time()
        for i, segment in enumerate(segments):
            self.sleep(line_delay)
            segment['text_zh'] = self.translate_text(segment['text'], backoff=backoff)

            if (i + 1) % 10 == 0 or i == total - 1:
                print(f"  Translation progress: {i + 1}/{total} ({round((i + 1) / total * 100)}%)")
            if on_progress is not None:
                on_progress(i + 1, total)

        total_elapsed = time.time() - total_start
        if total:
            print(f"Total time: {total_elapsed:.2f}s ({total_elapsed/total:.2f}s per segment avg)")
        print(f"Translation complete")

        return segments
