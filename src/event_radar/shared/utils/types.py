from enum import Enum
from typing import Any, Dict, TypedDict, Union


class ErrorType(Enum):
    """
    Enumeration for the error categories reported by the radar pipeline.

    Attributes:
        GENERAL_ERROR: A general error that does not fall into specific categories.
        HTTP_ERROR: A source answered with a non-2xx HTTP status.
        FETCH_ERROR: A network level failure while acquiring source content.
        RENDER_ERROR: The JavaScript rendering provider failed or refused the page.
        TIMEOUT_ERROR: A fetch, render or extraction call ran past its own timeout.
        PARSE_ERROR: A payload could not be parsed (bad JSON, unexpected shape).
        EXTRACTION_ERROR: The AI extraction provider failed or answered with garbage.
        REDIS_ERROR: The persistence layer is unavailable or rejected a command.
        NOT_FOUND: A requested source or record does not exist.
        VALUE_ERROR: A request carried an invalid value.
        UNAUTHORIZED: A caller did not present valid admin credentials.
        NOTIFICATION_ERROR: An alert or report could not be delivered.
        AWS_ERROR: An AWS service call failed.
        UNKNOWN_ERROR: An unknown or unspecified error.
    """

    GENERAL_ERROR = "GENERAL_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    FETCH_ERROR = "FETCH_ERROR"
    RENDER_ERROR = "RENDER_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    EXTRACTION_ERROR = "EXTRACTION_ERROR"
    REDIS_ERROR = "REDIS_ERROR"
    NOT_FOUND = "NOT_FOUND"
    VALUE_ERROR = "VALUE_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOTIFICATION_ERROR = "NOTIFICATION_ERROR"
    AWS_ERROR = "AWS_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class LambdaContext:
    """
    A class representing the context object provided to AWS Lambda functions.

    Attributes:
        aws_request_id (str): The unique identifier for the current invocation.
        log_stream_name (str): The name of the CloudWatch log stream for the invocation.
        function_name (str): The name of the Lambda function being executed.
        remaining_time_in_millis (int): Milliseconds left before the function times out.
    """

    aws_request_id: str
    log_stream_name: str
    function_name: str
    remaining_time_in_millis: int


class AwsInfo(TypedDict):
    aws_request_id: str
    log_stream_name: str


class SuccessResponseBase(TypedDict):
    """
    A base class for representing a successful response.

    Attributes:
        status (str): The status of the response, typically indicating success.
        data (Any): The data payload of the response.
    """

    status: str
    data: Any


class ErrorResponseBase(TypedDict):
    """
    A TypedDict representing the structure of an error response.

    Attributes:
        status (str): The status of the response, "error".
        error (Dict[str, str]): The error category under "type" and a
            human-readable explanation under "message".
    """

    status: str
    error: Dict[str, str]


# Define the response types
SuccessResponse = Union[SuccessResponseBase, AwsInfo]
ErrorResponse = Union[ErrorResponseBase, AwsInfo]
ResponseBody = Union[SuccessResponse, ErrorResponse]


class ResponseType(TypedDict):
    """
    ResponseType is a TypedDict that defines the structure of a response object.

    Attributes:
        statusCode (int): The HTTP status code of the response.
        headers (Dict[str, str]): A dictionary containing the headers of the response.
        body (ResponseBody): The body of the response.
    """

    statusCode: int
    headers: Dict[str, str]
    body: Union[ResponseBody, str]
