from app.services.result import ErrorKind, Result
from app.services.state_machine import ResponseOutcome, classify_response, resolve_owner
