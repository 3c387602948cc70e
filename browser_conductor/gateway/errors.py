"""Mapping of conductor error kinds onto protocol error codes"""

from browser_conductor.exceptions import ConductorError

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

_JSONRPC_CODES = {
	"ProtocolParseError": PARSE_ERROR,
	"ProtocolInvalidRequest": INVALID_REQUEST,
	"ProtocolMethodNotFound": METHOD_NOT_FOUND,
	"ProtocolInvalidParams": INVALID_PARAMS,
}

_HTTP_STATUS = {
	"NotFound": 404,
	"ParentNotFound": 404,
	"DuplicateId": 409,
	"UnsupportedEngineKind": 400,
	"InvalidRequest": 400,
	"ProtocolParseError": 400,
	"ProtocolInvalidRequest": 400,
	"ProtocolInvalidParams": 400,
	"ProtocolMethodNotFound": 404,
	"ElementNotFound": 404,
	"IntentTranslationFailure": 422,
	"NavigationFailure": 502,
	"TimeoutExceeded": 504,
	"InternalExecutionError": 500,
}


def jsonrpc_code(error: ConductorError) -> int:
	"""Tool and operation failures all reuse -32603"""
	return _JSONRPC_CODES.get(error.kind, INTERNAL_ERROR)


def http_status(error: ConductorError) -> int:
	return _HTTP_STATUS.get(error.kind, 500)
