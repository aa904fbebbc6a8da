from sqlalchemy import delete

from conftest import reload, settings_of
from household.db.models.user import User
from household.schemas.invite import AcceptInviteInput, CreateInviteInput
from household.schemas.partnership import ConfirmationKind, Persona, SetPersonaInput


def _hard_delete(db, user):
    db.execute(delete(User).where(User.id == user.id))
    db.commit()
    db.expire_all()


def test_status_variants(db, services, make_user):
    solo = make_user("Kim", persona="solo")
    waiting = make_user("Lee", persona="dual", emoji="😸")
    services.invites.create_invite(waiting.id, CreateInviteInput(partner_email="ash@example.com"), db)
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD", emoji="🌞")
    sam = make_user("Sam", persona="dual", primary=pat, group_id="42", currency="USD", emoji="🤑")

    assert services.partnership.get_partnership_status(solo.id).type == "solo"

    status = services.partnership.get_partnership_status(waiting.id)
    assert status.type == "primary_waiting"
    assert status.pending_invite_email == "ash@example.com"

    status = services.partnership.get_partnership_status(pat.id)
    assert status.type == "primary"
    assert status.secondary_name == "Sam"
    assert status.secondary_email == "sam@example.com"

    status = services.partnership.get_partnership_status(sam.id)
    assert status.type == "secondary"
    assert status.primary_name == "Pat"
    assert status.primary_emoji == "🌞"


def test_new_user_to_linked_secondary(db, services, make_user):
    pat = make_user("Pat")
    sam = make_user("Sam", emoji="🤴")

    assert services.partnership.set_persona(pat.id, SetPersonaInput(persona=Persona.DUAL), db).status == "committed"
    created = services.invites.create_invite(pat.id, CreateInviteInput(partner_email="partner@example.com"), db)
    accepted = services.invites.accept_invite(created.token, sam.id, AcceptInviteInput(), db)

    assert accepted.status == "committed"
    status = services.partnership.get_partnership_status(sam.id)
    assert status.type == "secondary"
    assert status.primary_name == "Pat"
    assert services.partnership.get_partnership_status(pat.id).type == "primary"


def test_hard_deleted_primary_leaves_an_orphan(db, services, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD")
    sam = make_user("Sam", persona="dual", primary=pat, group_id="42", currency="USD", emoji="🤑")
    _hard_delete(db, pat)

    assert services.partnership.get_partnership_status(sam.id).type == "orphaned"

    result = services.orphans.unlink_from_primary(sam.id, db)
    assert result.status == "committed"
    sam = reload(db, sam)
    assert sam.primary_user_id is None
    assert sam.persona == "solo"
    assert settings_of(db, sam).group_id is None
    assert services.partnership.get_partnership_status(sam.id).type == "solo"

    again = services.orphans.unlink_from_primary(sam.id, db)
    assert again.status == "not_a_secondary"


def test_soft_deleted_primary_counts_as_gone(db, services, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD")
    sam = make_user("Sam", persona="dual", primary=pat, group_id="42", currency="USD", emoji="🤑")
    pat.mark_deleted()
    db.commit()

    assert services.orphans.is_orphaned(reload(db, sam)) is True
    assert services.partnership.get_partnership_status(sam.id).type == "orphaned"
    # A deleted primary no longer occupies the group
    assert services.settings.get_partner_info(sam.id, "42") is None


def test_unlink_of_live_link(db, services, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD")
    sam = make_user("Sam", persona="dual", primary=pat, group_id="42", currency="USD", emoji="🤑")

    result = services.orphans.unlink_from_primary(sam.id, db)

    assert result.status == "committed"
    assert services.partnership.get_partnership_status(pat.id).type == "primary_waiting"


def test_orphan_leaving_needs_confirmation_without_partner_name(db, services, make_user, outbox):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD")
    sam = make_user("Sam", persona="dual", primary=pat, group_id="42", group_name="Home", currency="USD", emoji="🤑")
    _hard_delete(db, pat)

    result = services.partnership.set_persona(sam.id, SetPersonaInput(persona=Persona.SOLO), db)

    assert result.status == "confirmation_required"
    assert result.kind == ConfirmationKind.SECONDARY_LEAVING
    assert result.partner_name is None
    assert result.group_name == "Home"

    confirmed = services.partnership.set_persona(sam.id, SetPersonaInput(persona=Persona.SOLO, confirmed=True), db)
    assert confirmed.status == "committed"
    assert reload(db, sam).primary_user_id is None
    assert outbox.messages == []


def test_orphan_cannot_pick_another_group(db, services, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD")
    sam = make_user("Sam", persona="dual", primary=pat, group_id="42", currency="USD", emoji="🤑")
    _hard_delete(db, pat)

    result = services.settings.save_shared_settings(sam.id, {"group_id": "77", "currency_code": "USD"}, db)

    assert result.status == "rejected"
    assert result.error_code == "SECONDARY_GROUP_LOCKED"


def test_link_invariants_hold_after_accept(db, services, make_user):
    pat = make_user("Pat", persona="dual", group_id="42", currency="USD", ratio="3:1")
    sam = make_user("Sam", emoji="🤴")
    created = services.invites.create_invite(pat.id, CreateInviteInput(partner_email="sam@example.com"), db)
    services.invites.accept_invite(created.token, sam.id, AcceptInviteInput(), db)

    pat, sam = reload(db, pat), reload(db, sam)
    # Secondary points at a live primary, which has no primary of its own
    assert pat.primary_user_id is None
    assert sam.primary_user_id == pat.id
    assert pat.persona == sam.persona == "dual"
    assert services.repos.user_repo.get_secondary_of(pat.id).id == sam.id

    link = services.repos.user_repo.get_link(sam)
    assert link == services.repos.user_repo.get_link(pat)
    assert link.other(sam.id) == pat.id

    pat_row, sam_row = settings_of(db, pat), settings_of(db, sam)
    assert pat_row.group_id == sam_row.group_id
    assert pat_row.currency_code == sam_row.currency_code
    assert sam_row.default_split_ratio == "1:3"
    assert pat_row.emoji != sam_row.emoji
