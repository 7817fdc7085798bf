"""
Error taxonomy for lesson imports

Every error carries the HTTP status the API answers with and a
human-readable (Chinese) message for the admin UI.
"""


class LessonImportError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(LessonImportError):
    """Bad URL or missing required field"""
    status_code = 400


class SubtitleParseError(InvalidInputError):
    """Pasted subtitle text yielded no cues"""


class TranscriptUnavailableError(LessonImportError):
    """No transcript, captions disabled, or video private/deleted"""
    status_code = 404


class UpstreamNetworkError(LessonImportError):
    """YouTube could not be reached (network or proxy failure)"""
    status_code = 500


class StorageError(LessonImportError):
    """Lesson or index file could not be written"""
    status_code = 500


NETWORK_HINT = (
    '网络连接失败。如果您在中国大陆，请确保：\n'
    '1. Clash/V2Ray 代理正在运行\n'
    '2. 代理端口为 7890/7897/10809\n'
    '3. 或设置环境变量 HTTP_PROXY\n\n'
    '详细错误：'
)


def is_network_error(exc: Exception) -> bool:
    """Heuristic used to tell proxy/network failures from other upstream errors"""
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in ('timed out', 'timeout', 'connection refused',
                                             'econnrefused', 'proxyerror', 'unable to connect',
                                             'max retries exceeded', 'failed to establish',
                                             'urlopen error'))
