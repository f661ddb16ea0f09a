"""
Files Lambda Function - Entry point for file uploads.
"""

import os
import sys
from typing import Any, Dict

# Add the ecommerce package to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from aws_lambda_powertools.utilities.typing import LambdaContext
from ecommerce.handlers.files_handler import lambda_handler as files_handler


def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """Lambda function entry point for the files API."""
    return files_handler(event, context)
