"""
Users Lambda Function - Entry point for the user API.

Delegates to the users handler, which builds the application container on the
first invocation of each Lambda container.
"""

import os
import sys
from typing import Any, Dict

# Add the ecommerce package to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from aws_lambda_powertools.utilities.typing import LambdaContext
from ecommerce.handlers.users_handler import lambda_handler as users_handler


def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """
    Lambda function entry point for the user API.

    Args:
        event: Lambda event payload (API Gateway event)
        context: Lambda context object

    Returns:
        API Gateway response dictionary
    """
    return users_handler(event, context)
