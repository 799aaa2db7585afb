"""
Sign-up confirmation with a one-time password.

An OTP confirms the sign-up it was issued for, once, within OTP_TTL.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from ..api import Api, handles
from ..core.errors import ValidationError
from ..core.events import Event, EventType, EventTypeRegistry
from ..core.projection import Projection
from ..scenario import Scenario, ago

OTP_TTL = timedelta(minutes=60)


def _sign_up_tags(data):
    return [f"email:{data['email_address']}", f"otp:{data['otp']}"]


SignUpInitiated = EventType("SignUpInitiated", tags=_sign_up_tags)
SignUpConfirmed = EventType("SignUpConfirmed", tags=_sign_up_tags)

EVENT_TYPES = EventTypeRegistry([SignUpInitiated, SignUpConfirmed])


class ConfirmSignUp(BaseModel):
    model_config = ConfigDict(frozen=True)

    email_address: str
    otp: str


@dataclass(frozen=True)
class PendingSignUp:
    email_address: str
    otp: str
    name: str
    otp_used: bool = False
    otp_expired: bool = False


def pending_sign_up(email_address: str, otp: str, now: datetime) -> Projection:
    """
    The sign-up initiated for exactly this (email_address, otp) pair, or None.

    The boundary covers both tags so a different sign-up reusing either one
    is seen, but only events carrying both values change the state.
    """
    expired_at_or_before = now - OTP_TTL

    def same_pair(event: Event) -> bool:
        return event.data["email_address"] == email_address and event.data["otp"] == otp

    def on_initiated(state: Optional[PendingSignUp], event: Event) -> Optional[PendingSignUp]:
        if not same_pair(event):
            return state
        return PendingSignUp(
            email_address=email_address,
            otp=otp,
            name=event.data["name"],
            otp_expired=event.timestamp <= expired_at_or_before,
        )

    def on_confirmed(state: Optional[PendingSignUp], event: Event) -> Optional[PendingSignUp]:
        if state is None or not same_pair(event):
            return state
        return replace(state, otp_used=True)

    return (
        Projection.for_tags([f"email:{email_address}", f"otp:{otp}"])
        .init(None)
        .when(SignUpInitiated, on_initiated)
        .when(SignUpConfirmed, on_confirmed)
    )


class OptInToken(Api):
    event_types = EVENT_TYPES

    @handles(ConfirmSignUp)
    def confirm_sign_up(self, command: ConfirmSignUp) -> List[int]:
        model, query, append_condition = self.build_decision_model(
            pending_sign_up=pending_sign_up(command.email_address, command.otp, self.now())
        )

        pending = model.pending_sign_up
        if pending is None:
            raise ValidationError("No pending sign-up for this OTP / email address")
        if pending.otp_used:
            raise ValidationError("OTP was already used")
        if pending.otp_expired:
            raise ValidationError("OTP expired")

        return self.store.append(
            SignUpConfirmed(
                email_address=command.email_address, otp=command.otp, name=pending.name
            ),
            query,
            append_condition,
        )


SCENARIOS = [
    Scenario("Confirm sign-up for non-existing OTP")
    .when(ConfirmSignUp(email_address="john.doe@example.com", otp="000000"))
    .expect_error("No pending sign-up for this OTP / email address"),
    Scenario("Confirm sign-up for OTP assigned to different email address")
    .given(SignUpInitiated(email_address="john.doe@example.com", otp="111111", name="John Doe"))
    .when(ConfirmSignUp(email_address="jane.doe@example.com", otp="111111"))
    .expect_error("No pending sign-up for this OTP / email address"),
    Scenario("Confirm sign-up for already used OTP")
    .given(
        SignUpInitiated(email_address="john.doe@example.com", otp="222222", name="John Doe"),
        SignUpConfirmed(email_address="john.doe@example.com", otp="222222", name="John Doe"),
    )
    .when(ConfirmSignUp(email_address="john.doe@example.com", otp="222222"))
    .expect_error("OTP was already used"),
    Scenario("Confirm sign-up for valid OTP")
    .given(SignUpInitiated(email_address="john.doe@example.com", otp="444444", name="John Doe"))
    .when(ConfirmSignUp(email_address="john.doe@example.com", otp="444444"))
    .expect_event(
        SignUpConfirmed(email_address="john.doe@example.com", otp="444444", name="John Doe")
    ),
    Scenario("Confirm sign-up for expired OTP")
    .given(
        SignUpInitiated(
            email_address="john.doe@example.com", otp="333333", name="John Doe"
        ).at(ago(minutes=61))
    )
    .when(ConfirmSignUp(email_address="john.doe@example.com", otp="333333"))
    .expect_error("OTP expired"),
]
