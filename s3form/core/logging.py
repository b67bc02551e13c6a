"""Logging utilities for s3form modules."""

import logging

ROOT_LOGGER_NAME = 's3form'


def get_logger(name: str) -> logging.Logger:
    """Get a package logger that inherits from the root logger.
    
    Names are placed under the ``s3form`` namespace, so ``get_logger('upload')``
    and ``get_logger('s3form.upload')`` return the same logger. The logger
    propagates to the root logger and only gets a default level when
    ``basicConfig()`` has not been called.
    
    Args:
        name: Logger name, with or without the ``s3form.`` prefix
        
    Returns:
        Configured logger instance
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + '.'):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    
    logger = logging.getLogger(name)
    logger.propagate = True
    
    # Only set default level if root logger has no handlers
    root_logger = logging.getLogger()
    if not root_logger.handlers and logger.level == logging.NOTSET:
        logger.setLevel(logging.WARNING)
    
    return logger
