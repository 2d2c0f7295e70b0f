import json
import logging
import random

logger = logging.getLogger()
logger.setLevel(logging.INFO)

MIN_VALUE = 0
MAX_VALUE = 100


def _random_number() -> int:
    return random.randint(MIN_VALUE, MAX_VALUE)


def _message(number: int) -> str:
    return f"Random number: {number}"


def handler(event, context):
    number = _random_number()
    logger.info(json.dumps({"event": "RandomNumberGenerated", "value": number}))
    # body is a JSON string value, not an object
    return {
        "statusCode": 200,
        "body": json.dumps(_message(number)),
    }
