"""
Files Handler - Lambda function for encrypted file uploads.
"""

from typing import Any, Dict

from aws_lambda_powertools.event_handler import Response
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext

from ecommerce.handlers.utils.bootstrap import get_application, run_async
from ecommerce.handlers.utils.observability import logger, metrics, tracer
from ecommerce.handlers.utils.rest_api_resolver import (
    FILES_PATH,
    FILES_TAG,
    api_response,
    build_resolver,
    handle_service_errors,
    parse_json_body,
)
from ecommerce.models.input import UploadFileRequest
from ecommerce.models.output import FileUploadOutput, HttpResponse

app = build_resolver(tags=[FILES_TAG])


@app.post(f"{FILES_PATH}/upload")
@tracer.capture_method
@handle_service_errors
def upload_file() -> Response:
    logger.info("Received request for file upload")
    request = UploadFileRequest.model_validate(parse_json_body(app))

    file_url = run_async(get_application().file_service.upload(request.file, request.filename, request.mime_type))

    output = FileUploadOutput(file_url=file_url)
    return api_response(HttpResponse.success(
        data=output.model_dump(mode='json', by_alias=True),
        message="File uploaded successfully",
    ))


@metrics.log_metrics(capture_cold_start_metric=True)
@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """Main Lambda handler for the files API."""
    return app.resolve(event, context)
