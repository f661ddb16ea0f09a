"""
Users Handler - Lambda function for the user API.

Routes parse and validate the request, run the matching UserService workflow
on the container's event loop and wrap the outcome in the HttpResponse
envelope. Service errors are mapped to HTTP status codes by
``handle_service_errors``.
"""

from typing import Any, Dict

from aws_lambda_powertools.event_handler import Response
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext

from ecommerce.handlers.utils.bootstrap import get_application, run_async
from ecommerce.handlers.utils.observability import logger, metrics, tracer
from ecommerce.handlers.utils.rest_api_resolver import (
    USERS_PATH,
    USERS_TAG,
    api_response,
    build_resolver,
    handle_service_errors,
    parse_int,
    parse_json_body,
)
from ecommerce.models.input import (
    AuthenticateRequest,
    CompletePasswordResetRequest,
    ConfirmRegistrationRequest,
    InitiatePasswordResetRequest,
    RegisterUserRequest,
    UpdateUserRequest,
)
from ecommerce.models.output import AuthenticationOutput, HttpResponse, PageOutput, UserOutput
from ecommerce.models.user import User

app = build_resolver(tags=[USERS_TAG])

DEFAULT_PAGE_SIZE = 10


@app.post(f"{USERS_PATH}/register")
@tracer.capture_method
@handle_service_errors
def register_user() -> Response:
    request = RegisterUserRequest.model_validate(parse_json_body(app))
    tracer.put_annotation("username", request.username)

    user = User(username=request.username, password=request.password, email=request.email)
    created = run_async(get_application().user_service.save(user))

    logger.info("User registered", extra={"user_id": created.id, "username": created.username})
    return api_response(HttpResponse.success(
        data=UserOutput.from_entity(created).model_dump(mode='json'),
        message="User registered successfully. Please confirm your email.",
        status_code=201,
    ))


@app.post(f"{USERS_PATH}/confirm")
@tracer.capture_method
@handle_service_errors
def confirm_registration() -> Response:
    request = ConfirmRegistrationRequest.model_validate(parse_json_body(app))
    run_async(get_application().user_service.confirm_registration(request.username, request.confirmation_code))
    return api_response(HttpResponse.success(data=None, message="User confirmed successfully"))


@app.post(f"{USERS_PATH}/authenticate")
@tracer.capture_method
@handle_service_errors
def authenticate() -> Response:
    request = AuthenticateRequest.model_validate(parse_json_body(app))
    token, user = run_async(get_application().user_service.authenticate(request.username, request.password))

    output = AuthenticationOutput(token=token, user=UserOutput.from_entity(user))
    return api_response(HttpResponse.success(data=output.model_dump(mode='json'), message="Authentication successful"))


@app.post(f"{USERS_PATH}/password-reset")
@tracer.capture_method
@handle_service_errors
def initiate_password_reset() -> Response:
    request = InitiatePasswordResetRequest.model_validate(parse_json_body(app))
    run_async(get_application().user_service.initiate_password_reset(request.username))
    return api_response(HttpResponse.success(
        data=None,
        message="Password reset initiated. Check your email for the code.",
    ))


@app.post(f"{USERS_PATH}/password-reset/confirm")
@tracer.capture_method
@handle_service_errors
def complete_password_reset() -> Response:
    request = CompletePasswordResetRequest.model_validate(parse_json_body(app))
    run_async(get_application().user_service.complete_password_reset(
        request.username,
        request.new_password,
        request.confirmation_code,
    ))
    return api_response(HttpResponse.success(data=None, message="Password reset completed successfully"))


@app.get(USERS_PATH)
@tracer.capture_method
@handle_service_errors
def list_users() -> Response:
    query_params = app.current_event.query_string_parameters or {}
    page = parse_int(query_params.get("page", "1"), "page")
    page_size = parse_int(query_params.get("page_size", str(DEFAULT_PAGE_SIZE)), "page_size")

    result = run_async(get_application().user_service.list_users(page, page_size))

    output = PageOutput[UserOutput](data=[UserOutput.from_entity(user) for user in result.data], count=result.count)
    return api_response(HttpResponse.success(data=output.model_dump(mode='json'), message="Users retrieved successfully"))


@app.get(f"{USERS_PATH}/<user_id>")
@tracer.capture_method
@handle_service_errors
def get_user(user_id: str) -> Response:
    tracer.put_annotation("user_id", user_id)
    user = run_async(get_application().user_service.get_user_by_id(parse_int(user_id, "User ID")))
    return api_response(HttpResponse.success(
        data=UserOutput.from_entity(user).model_dump(mode='json'),
        message="User retrieved successfully",
    ))


@app.put(f"{USERS_PATH}/<user_id>")
@tracer.capture_method
@handle_service_errors
def update_user(user_id: str) -> Response:
    tracer.put_annotation("user_id", user_id)
    entity_id = parse_int(user_id, "User ID")
    request = UpdateUserRequest.model_validate(parse_json_body(app))

    user = run_async(get_application().user_service.update_user(entity_id, request.model_dump(exclude_none=True)))
    return api_response(HttpResponse.success(
        data=UserOutput.from_entity(user).model_dump(mode='json'),
        message="User updated successfully",
    ))


@app.delete(f"{USERS_PATH}/<user_id>")
@tracer.capture_method
@handle_service_errors
def delete_user(user_id: str) -> Response:
    tracer.put_annotation("user_id", user_id)
    run_async(get_application().user_service.delete_user(parse_int(user_id, "User ID")))
    return api_response(HttpResponse.success(data=None, message="User deleted successfully"))


@metrics.log_metrics(capture_cold_start_metric=True)
@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """
    Main Lambda handler for the users API.

    Args:
        event: API Gateway REST proxy event
        context: Lambda context

    Returns:
        API Gateway response
    """
    return app.resolve(event, context)
