from datetime import timedelta

import pytest

from conftest import reload, settings_of
from household.db.models.partner_invite import PartnerInvite
from household.schemas.invite import AcceptInviteInput, CreateInviteInput, PendingSettings, ResendInviteInput


def _invite_input(**kwargs):
    kwargs.setdefault("partner_email", "sam@example.com")
    return CreateInviteInput(**kwargs)


def _invite_row(db, token):
    db.expire_all()
    return db.query(PartnerInvite).filter(PartnerInvite.token == token).first()


# Create

def test_create_invite_returns_token_and_seven_day_expiry(db, services, make_user, clock, outbox):
    pat = make_user("Pat", persona="dual", group_id="42", group_name="Home", currency="USD", ratio="3:2")

    result = services.invites.create_invite(pat.id, _invite_input(partner_name="Sam"), db)

    assert result.status == "created"
    assert result.reused is False
    assert len(result.token) == 12
    assert result.token.isalnum()
    assert result.expires_at == clock() + timedelta(days=7)

    invite = _invite_row(db, result.token)
    assert invite.status == "pending"
    assert invite.group_id == "42"
    assert invite.group_name == "Home"
    assert invite.currency_code == "USD"
    assert invite.default_split_ratio == "3:2"
    assert invite.primary_emoji == "✅"
    assert invite.email_reminder_count == 0
    assert invite.email_sent_at is not None

    assert outbox.templates() == ["partner_invite"]
    assert outbox.messages[0].to == "sam@example.com"
    assert result.token in outbox.messages[0].context["invite_url"]


def test_create_invite_is_idempotent(db, services, make_user, outbox):
    pat = make_user("Pat", persona="dual")

    first = services.invites.create_invite(pat.id, _invite_input(), db)
    second = services.invites.create_invite(pat.id, _invite_input(partner_email="other@example.com"), db)

    assert second.token == first.token
    assert second.reused is True
    assert db.query(PartnerInvite).count() == 1
    # Returning the live invite does not send again
    assert len(outbox.messages) == 1


def test_create_invite_replaces_an_expired_one(db, services, make_user, clock):
    pat = make_user("Pat", persona="dual")
    first = services.invites.create_invite(pat.id, _invite_input(), db)

    clock.advance(days=8)
    second = services.invites.create_invite(pat.id, _invite_input(), db)

    assert second.token != first.token
    assert second.reused is False
    assert _invite_row(db, first.token).status == "expired"
    assert _invite_row(db, second.token).status == "pending"


def test_pending_settings_override_saved_settings(db, services, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD")

    pending = PendingSettings(group_id="77", group_name="Flat", currency_code="eur", default_split_ratio="60:40")
    result = services.invites.create_invite(pat.id, _invite_input(pending_settings=pending), db)

    invite = _invite_row(db, result.token)
    assert invite.group_id == "77"
    assert invite.currency_code == "EUR"
    assert invite.default_split_ratio == "60:40"


def test_create_invite_without_email(db, services, make_user, outbox):
    pat = make_user("Pat", persona="dual")

    result = services.invites.create_invite(pat.id, _invite_input(send_email=False), db)

    assert result.status == "created"
    assert _invite_row(db, result.token).email_sent_at is None
    assert outbox.messages == []


@pytest.mark.parametrize("persona", [None, "solo"])
def test_create_invite_requires_duo_mode(db, services, make_user, persona):
    pat = make_user("Pat", persona=persona)

    result = services.invites.create_invite(pat.id, _invite_input(), db)

    assert result.status == "rejected"
    assert result.error_code == "NOT_IN_DUO_MODE"


def test_secondary_cannot_invite(db, services, make_user):
    pat = make_user("Pat", persona="dual")
    sam = make_user("Sam", persona="dual", primary=pat)

    result = services.invites.create_invite(sam.id, _invite_input(partner_email="kim@example.com"), db)

    assert result.status == "rejected"
    assert result.error_code == "SECONDARY_CANNOT_INVITE"


def test_primary_with_partner_cannot_invite(db, services, make_user):
    pat = make_user("Pat", persona="dual")
    make_user("Sam", persona="dual", primary=pat)

    result = services.invites.create_invite(pat.id, _invite_input(partner_email="kim@example.com"), db)

    assert result.status == "rejected"
    assert result.error_code == "ALREADY_HAS_PARTNER"


# Resend

def test_resend_counts_reminders_up_to_the_limit(db, services, make_user, outbox):
    pat = make_user("Pat", persona="dual")
    created = services.invites.create_invite(pat.id, _invite_input(), db)

    counts = [services.invites.resend_invite(pat.id, ResendInviteInput(), db).reminder_count for _ in range(3)]
    assert counts == [1, 2, 3]

    fourth = services.invites.resend_invite(pat.id, ResendInviteInput(), db)
    assert fourth.status == "max_reminders_exceeded"
    assert fourth.reminder_count == 3
    assert fourth.max_reminders == 3

    assert _invite_row(db, created.token).email_reminder_count == 3
    # Initial send plus three reminders
    assert outbox.templates() == ["partner_invite"] * 4
    assert outbox.messages[-1].context["reminder"] is True


def test_resend_to_a_corrected_address(db, services, make_user, clock, outbox):
    pat = make_user("Pat", persona="dual")
    created = services.invites.create_invite(pat.id, _invite_input(partner_email="typo@exmaple.com"), db)
    clock.advance(hours=1)

    result = services.invites.resend_invite(pat.id, ResendInviteInput(new_email="Sam@Example.com"), db)

    assert result.status == "sent"
    invite = _invite_row(db, created.token)
    assert invite.partner_email == "sam@example.com"
    assert outbox.messages[-1].to == "sam@example.com"


def test_resend_without_pending_invite_is_rejected(db, services, make_user):
    pat = make_user("Pat", persona="dual")

    result = services.invites.resend_invite(pat.id, ResendInviteInput(), db)

    assert result.status == "rejected"
    assert result.error_code == "NO_PENDING_INVITE"


# Preview

def test_preview_describes_the_invite(db, services, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", group_name="Home", currency="USD", ratio="1:1", emoji="🌞")
    created = services.invites.create_invite(pat.id, _invite_input(), db)

    preview = services.invites.get_invite_preview(created.token, db)

    assert preview.status == "valid"
    assert preview.primary_name == "Pat"
    assert preview.group_name == "Home"
    assert preview.currency_code == "USD"
    assert preview.primary_emoji == "🌞"


def test_preview_of_unknown_token(db, services):
    result = services.invites.get_invite_preview("doesnotexist", db)
    assert result.status == "invalid_or_expired_token"
    assert result.reason == "not_found"


# Accept

def test_accept_links_secondary_and_inverts_ratio(db, services, make_user, outbox):
    pat = make_user("Pat", persona="dual", group_id="42", group_name="Home", currency="USD", ratio="3:2")
    sam = make_user("Sam", emoji="🤑")
    created = services.invites.create_invite(pat.id, _invite_input(), db)

    result = services.invites.accept_invite(created.token, sam.id, AcceptInviteInput(), db)

    assert result.status == "committed"
    assert result.primary_name == "Pat"
    assert result.emoji == "🤑"
    assert result.skip_onboarding is False

    sam = reload(db, sam)
    assert sam.primary_user_id == pat.id
    assert sam.persona == "dual"
    assert sam.onboarding_step == 0

    sam_settings = settings_of(db, sam)
    assert sam_settings.group_id == "42"
    assert sam_settings.group_name == "Home"
    assert sam_settings.currency_code == "USD"
    assert sam_settings.default_split_ratio == "2:3"
    assert sam_settings.emoji == "🤑"

    invite = _invite_row(db, created.token)
    assert invite.status == "accepted"
    assert invite.accepted_by_user_id == sam.id
    assert invite.accepted_at is not None

    assert outbox.templates() == ["partner_invite", "partner_joined"]
    assert outbox.messages[-1].to == "pat@example.com"


def test_accept_keeps_completed_onboarding(db, services, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD")
    sam = make_user("Sam", emoji="🤑", onboarding_complete=True)
    created = services.invites.create_invite(pat.id, _invite_input(), db)

    result = services.invites.accept_invite(created.token, sam.id, AcceptInviteInput(), db)

    assert result.skip_onboarding is True
    sam = reload(db, sam)
    assert sam.onboarding_complete is True
    assert sam.onboarding_step == 7


def test_accept_replaces_colliding_default_emoji(db, services, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD", emoji="✅")
    sam = make_user("Sam", emoji="✅")
    created = services.invites.create_invite(pat.id, _invite_input(), db)

    result = services.invites.accept_invite(created.token, sam.id, AcceptInviteInput(), db)

    assert result.status == "committed"
    assert result.emoji != "✅"
    assert settings_of(db, sam).emoji == result.emoji


def test_accept_with_explicit_colliding_emoji_is_a_conflict(db, services, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD", emoji="🌚")
    sam = make_user("Sam")
    created = services.invites.create_invite(pat.id, _invite_input(), db)

    result = services.invites.accept_invite(created.token, sam.id, AcceptInviteInput(emoji="🌚"), db)

    assert result.status == "emoji_conflict"
    assert result.owner == "Pat"
    assert result.emoji == "🌚"
    assert result.suggested_emoji == "✅"
    # Nothing was linked
    assert reload(db, sam).primary_user_id is None
    assert _invite_row(db, created.token).status == "pending"


def test_accept_expires_the_accepting_users_own_invite(db, services, make_user):
    pat = make_user("Pat", persona="dual")
    sam = make_user("Sam", persona="dual", emoji="🤴")
    pat_invite = services.invites.create_invite(pat.id, _invite_input(), db)
    sam_invite = services.invites.create_invite(sam.id, _invite_input(partner_email="kim@example.com"), db)

    result = services.invites.accept_invite(pat_invite.token, sam.id, AcceptInviteInput(), db)

    assert result.status == "committed"
    assert _invite_row(db, sam_invite.token).status == "expired"


def test_accepted_token_cannot_be_reused(db, services, make_user):
    pat = make_user("Pat", persona="dual")
    sam = make_user("Sam", emoji="🤴")
    kim = make_user("Kim", emoji="😸")
    created = services.invites.create_invite(pat.id, _invite_input(), db)
    services.invites.accept_invite(created.token, sam.id, AcceptInviteInput(), db)

    result = services.invites.accept_invite(created.token, kim.id, AcceptInviteInput(), db)

    assert result.status == "invalid_or_expired_token"
    assert result.reason == "already_used"


def test_token_past_expiry_is_marked_expired(db, services, make_user, clock):
    pat = make_user("Pat", persona="dual")
    sam = make_user("Sam", emoji="🤴")
    created = services.invites.create_invite(pat.id, _invite_input(), db)

    clock.advance(days=7, seconds=1)
    result = services.invites.accept_invite(created.token, sam.id, AcceptInviteInput(), db)

    assert result.status == "invalid_or_expired_token"
    assert result.reason == "expired"
    assert _invite_row(db, created.token).status == "expired"
    assert reload(db, sam).primary_user_id is None


def test_accept_own_invite_is_rejected(db, services, make_user):
    pat = make_user("Pat", persona="dual")
    created = services.invites.create_invite(pat.id, _invite_input(), db)

    result = services.invites.accept_invite(created.token, pat.id, AcceptInviteInput(), db)

    assert result.status == "rejected"
    assert result.error_code == "OWN_INVITE"


def test_existing_secondary_cannot_accept(db, services, make_user):
    pat = make_user("Pat", persona="dual")
    kim = make_user("Kim", persona="dual")
    sam = make_user("Sam", persona="dual", primary=kim, emoji="🤴")
    created = services.invites.create_invite(pat.id, _invite_input(), db)

    result = services.invites.accept_invite(created.token, sam.id, AcceptInviteInput(), db)

    assert result.status == "rejected"
    assert result.error_code == "ALREADY_SECONDARY"


def test_user_with_own_partner_cannot_accept(db, services, make_user):
    pat = make_user("Pat", persona="dual")
    kim = make_user("Kim", persona="dual", emoji="🤴")
    make_user("Sam", persona="dual", primary=kim, emoji="😸")
    created = services.invites.create_invite(pat.id, _invite_input(), db)

    result = services.invites.accept_invite(created.token, kim.id, AcceptInviteInput(), db)

    assert result.status == "rejected"
    assert result.error_code == "ALREADY_HAS_PARTNER"
