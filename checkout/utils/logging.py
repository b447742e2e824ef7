"""
checkout/utils/logging.py
─────────────────────────
Configures structured logging for the app and the cart core.
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from flask import has_request_context, request


class RequestFormatter(logging.Formatter):
    """
    Formatter that adds the request URL and client address to each record
    when one is being handled.
    """
    def format(self, record):
        if has_request_context():
            record.url = request.url
            record.remote_addr = request.remote_addr
        else:
            record.url = None
            record.remote_addr = None
        return super().format(record)


def setup_logging(app):
    """
    Rotating file log at logs/app.log (5MB x 5) plus stdout.
    Format: timestamp | level | module | message
    """
    level = logging.DEBUG if app.debug else logging.INFO
    handlers = []

    # 1. File log; skipped when the filesystem is read-only
    if not app.testing:
        log_dir = os.path.join(app.root_path, '..', 'logs')
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, 'app.log'),
                maxBytes=5 * 1024 * 1024,
                backupCount=5
            )
        except OSError as exc:
            app.logger.warning(f'File logging disabled: {exc}')
        else:
            file_handler.setFormatter(RequestFormatter(
                '%(asctime)s | %(levelname)s | %(name)s | %(remote_addr)s | %(url)s | %(message)s'
            ))
            file_handler.setLevel(level)
            handlers.append(file_handler)

    # 2. Stdout
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
    ))
    stream_handler.setLevel(level)
    handlers.append(stream_handler)

    # app.logger is the 'checkout' logger, so records from the cart core
    # (checkout.cart.*, checkout.pricing.*) propagate to these handlers too.
    for handler in handlers:
        if not any(type(h) is type(handler) for h in app.logger.handlers):
            app.logger.addHandler(handler)

    app.logger.setLevel(level)
    app.logger.info("Checkout service startup")
