import logging

_logger = logging.getLogger('mpris_media_bridge')

_LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warn': logging.WARNING,
    'warning': logging.WARNING,
    'error': logging.ERROR,
    'critical': logging.CRITICAL,
}


def log(level: str, *args) -> None:
    # log('debug', 'New media state: ', state) joins its arguments like print does
    message = ' '.join(str(arg) for arg in args)
    _logger.log(_LEVELS.get(level, logging.INFO), message)
