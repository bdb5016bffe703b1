import logging
import sys

# Configure logging format
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, level=logging.INFO) -> logging.Logger:
    """
    Sets up a logger with consistent formatting.

    Args:
        name: Name of the logger (typically __name__ from the calling module)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

    return logger

def log_llm_interaction(logger: logging.Logger, template_path: str, params: dict,
                        response: str, model_name: str, duration_ms: float = None):
    """
    Logs an LLM interaction with all relevant details.

    Args:
        logger: Logger instance to use
        template_path: Path to the prompt template used
        params: Parameters passed to the template
        response: Response from the LLM
        model_name: Name of the model used
        duration_ms: Optional duration of the call in milliseconds
    """
    duration_str = f" ({duration_ms:.2f}ms)" if duration_ms else ""
    logger.info(f"LLM Request{duration_str} - Model: {model_name}")
    logger.debug(f"  Template: {template_path}")
    logger.debug(f"  Params: {params}")
    logger.info(f"  Response: {response[:200]}{'...' if len(response) > 200 else ''}")

def log_item_outcome(logger: logging.Logger, item_id, title: str, outcome: str, tags=None):
    """
    Logs the result of one ingestion stage for a single content item.

    Args:
        logger: Logger instance to use
        item_id: Database id of the item, or None if it was never stored
        title: Item title
        outcome: Outcome label (enriched, fallback, skipped)
        tags: Optional list of tags attached to the item
    """
    tags_str = f" [{', '.join(tags)}]" if tags else ""
    logger.info(f"[{item_id}] {outcome}: \"{title[:60]}\"{tags_str}")
