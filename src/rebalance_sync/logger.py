import gzip
import json
import logging
import os
import shutil
import sys
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler

from sync_config import LoggingConfig

_STANDARD_ATTRS = frozenset(logging.LogRecord('', 0, '', 0, '', (), None).__dict__) | {'message', 'asctime'}
_CONTEXT_KEYS = ('account_id', 'portfolio_id')


class CompressingTimedRotatingFileHandler(TimedRotatingFileHandler):
    """TimedRotatingFileHandler that gzips rotated files"""

    def doRollover(self):
        super().doRollover()

        dir_name, base_name = os.path.split(self.baseFilename)
        try:
            for file_name in os.listdir(dir_name):
                if file_name.startswith(base_name) and not file_name.endswith('.gz') and file_name != base_name:
                    full_path = os.path.join(dir_name, file_name)
                    with open(full_path, 'rb') as f_in:
                        with gzip.open(f'{full_path}.gz', 'wb') as f_out:
                            shutil.copyfileobj(f_in, f_out)
                    os.remove(full_path)
        except OSError as e:
            # A failed compression must not break the rollover itself
            print(f"Error during log compression: {e}", file=sys.stderr)


class StructuredFormatter(logging.Formatter):
    """Text or JSON lines carrying the account/portfolio context of a sync"""

    def __init__(self, output_format: str = 'text'):
        super().__init__()
        self.output_format = output_format

    def format(self, record):
        log_data = {
            'timestamp': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }

        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            if isinstance(value, datetime):
                value = value.isoformat()
            log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        if self.output_format == 'json':
            return json.dumps(log_data, default=str)

        base_msg = f"{log_data['timestamp']} - {log_data['logger']} - {log_data['level']} - {log_data['message']}"
        for key in _CONTEXT_KEYS:
            if key in log_data:
                base_msg += f" [{key}={log_data[key]}]"
        if 'exception' in log_data:
            base_msg += f"\n{log_data['exception']}"
        return base_msg


def configure_root_logger(config: LoggingConfig):
    """Route every logger through the structured formatter"""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, config.level))

    formatter = StructuredFormatter(config.format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config.file_path:
        log_dir = os.path.dirname(os.path.abspath(config.file_path))
        os.makedirs(log_dir, exist_ok=True)

        file_handler = CompressingTimedRotatingFileHandler(
            filename=config.file_path,
            when='midnight',
            interval=1,
            backupCount=365,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    _configure_third_party_loggers()


def _configure_third_party_loggers():
    # aiohttp: request/response detail is noise at INFO
    logging.getLogger('aiohttp').setLevel(logging.WARNING)
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)


def sync_logger(account_id: str, portfolio_id: str, name: str = 'rebalance_sync') -> logging.LoggerAdapter:
    """Logger that stamps the sync's account and portfolio on every record"""
    return logging.LoggerAdapter(
        logging.getLogger(name),
        {'account_id': account_id, 'portfolio_id': portfolio_id}
    )
