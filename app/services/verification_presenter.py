# app/services/verification_presenter.py
"""Maps a VerificationOutcome to the JSON shown on the guard's screen."""

from app.schemas.visitor_pass import PassOut, VerificationOut
from app.services.pass_encoder import build_verification_url
from app.services.verification_service import VerificationOutcome, VerificationState

HEADLINES = {
    VerificationState.VALID: "ACCESS GRANTED",
    VerificationState.FUTURE: "FUTURE DATE",
    VerificationState.EXPIRED: "PASS EXPIRED",
    VerificationState.INVALID: "INVALID PASS",
}


def to_pass_out(record) -> PassOut:
    out = PassOut.model_validate(record)
    out.verification_url = build_verification_url(record.pass_token)
    return out


def present(outcome: VerificationOutcome) -> VerificationOut:
    return VerificationOut(
        state=outcome.state.value,
        headline=HEADLINES[outcome.state],
        message=outcome.message,
        host_address=outcome.host_address,
        invitation=to_pass_out(outcome.record) if outcome.record is not None else None,
    )
