"""
Shared Powertools instances for the e-commerce backend.

Handlers, services, repositories and AWS adapters all log, trace and emit
metrics through the three objects defined here, so one Lambda invocation ends
up with a single correlated log stream, X-Ray trace and EMF metric blob.
"""

import os

from aws_lambda_powertools.logging import Logger
from aws_lambda_powertools.metrics import Metrics
from aws_lambda_powertools.tracing import Tracer

SERVICE_NAME = os.getenv('POWERTOOLS_SERVICE_NAME', 'ecommerce-backend')
METRICS_NAMESPACE = os.getenv('POWERTOOLS_METRICS_NAMESPACE', 'EcommerceBackend')

# Level comes from LOG_LEVEL; handlers inject the correlation id per request
logger: Logger = Logger(service=SERVICE_NAME)

# Disabled by setting POWERTOOLS_TRACE_DISABLED to "true"
tracer: Tracer = Tracer(service=SERVICE_NAME)

# Business metrics: UserRegistered, RegistrationRollback, AuthenticationFailed, FileUploaded
metrics: Metrics = Metrics(namespace=METRICS_NAMESPACE, service=SERVICE_NAME)
