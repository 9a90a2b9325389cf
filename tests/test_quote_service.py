"""Quote lifecycle service tests against a real (sqlite) database."""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from woms.auth.scope import Action
from woms.errors import (
    AlreadyConverted,
    Conflict,
    Forbidden,
    InvalidTransition,
    OutOfScope,
    QuoteExpired,
    ValidationFailed,
)
from woms.models import QuoteStatus as S
from woms.services.quotes import QuoteService, notify_expiring_quotes
from woms.services.retry import retry_on_conflict
from woms.services.work_orders import ingest_work_order
from woms.storage.quotes import find_quote, list_quote_messages
from woms.storage.repositories import count_work_orders_for_quote, find_work_order
from tests.helpers import RecordingNotifier, ctx_for, quote_data


class InterleavedQuoteService(QuoteService):
    """Runs ``competitor`` once, after the quote is read and before it is written."""

    def __init__(self, db, competitor, **kwargs):
        super().__init__(db, **kwargs)
        self.competitor = competitor

    async def _load(self, ctx, quote_id, action=Action.READ):
        quote = await super()._load(ctx, quote_id, action)
        if self.competitor is not None:
            competitor, self.competitor = self.competitor, None
            await competitor()
        return quote


class BrokenNotifier:
    def send(self, event):
        raise RuntimeError("smtp down")


# Creation and drafts


async def test_create_stamps_effective_tenant_and_number(service, world):
    quote = await service.create_quote(ctx_for(world.acme_client), quote_data(tenant_id=world.globex.id))
    assert quote.tenant_id == world.acme.id
    assert quote.status == S.DRAFT
    assert quote.quote_number == "QTE-2026-001"
    assert quote.created_by == world.acme_client.id


async def test_switched_admin_creates_in_target_tenant(service, world):
    quote = await service.create_quote(ctx_for(world.admin, switch_to=world.globex.id), quote_data())
    assert quote.tenant_id == world.globex.id


async def test_staff_cannot_create_quotes(service, world):
    with pytest.raises(Forbidden):
        await service.create_quote(ctx_for(world.staff), quote_data())


async def test_quote_numbers_are_never_reused_after_failure(service, world):
    client = ctx_for(world.acme_client)
    first_number = (await service.create_quote(client, quote_data())).quote_number
    broken = quote_data()
    del broken["property_name"]
    with pytest.raises(IntegrityError):
        await service.create_quote(client, broken)
    third = await service.create_quote(client, quote_data())
    assert first_number == "QTE-2026-001"
    assert third.quote_number == "QTE-2026-003"


async def test_update_draft_ignores_protected_fields(service, world):
    client = ctx_for(world.acme_client)
    quote = await service.create_quote(client, quote_data())
    updated = await service.update_draft(
        client, quote.id, {"title": "Replace all gutters", "tenant_id": world.globex.id, "status": "Approved"}
    )
    assert updated.title == "Replace all gutters"
    assert updated.tenant_id == world.acme.id
    assert updated.status == S.DRAFT


async def test_update_after_submit_is_refused(service, world, drive):
    quote = await drive(S.SUBMITTED)
    with pytest.raises(InvalidTransition):
        await service.update_draft(ctx_for(world.acme_client), quote.id, {"title": "Changed"})


# Lifecycle


async def test_full_lifecycle_records_messages_and_notifications(service, world, notifier, db):
    client = ctx_for(world.acme_client)
    staff = ctx_for(world.staff)
    manager = ctx_for(world.acme_admin)

    quote = await service.create_quote(client, quote_data())
    await service.submit(client, quote.id)
    await service.request_info(staff, quote.id, "Photos of the damage please")
    await service.submit(client, quote.id)
    await service.provide_quote(staff, quote.id, Decimal("900"), Decimal("4"), "Labour only")
    await service.discuss(client, quote.id, "Does this include disposal?")
    await service.provide_quote(staff, quote.id, Decimal("950"), Decimal("4"), "Incl. disposal")
    quote = await service.approve(manager, quote.id)
    assert quote.status == S.APPROVED
    assert quote.approved_at is not None
    assert quote.estimated_cost == Decimal("950.00")

    assert notifier.kinds == [
        "submitted",
        "info_requested",
        "submitted",
        "quoted",
        "under_discussion",
        "quoted",
        "approved",
    ]
    assert all(e.tenant_id == world.acme.id and e.quote_id == quote.id for e in notifier.events)
    messages = await list_quote_messages(db, quote.id)
    assert [m.message_type for m in messages][:2] == ["submitted", "info_requested"]
    assert messages[1].message == "Photos of the damage please"


async def test_client_cannot_skip_to_approved(service, world, drive):
    quote = await drive(S.SUBMITTED)
    with pytest.raises(InvalidTransition):
        await service.approve(ctx_for(world.acme_admin), quote.id)


async def test_plain_client_cannot_approve(service, world, drive):
    quote = await drive(S.QUOTED)
    with pytest.raises(Forbidden):
        await service.approve(ctx_for(world.acme_client), quote.id)


async def test_provide_quote_validations(service, world, drive, clock):
    quote_id = (await drive(S.SUBMITTED)).id
    staff = ctx_for(world.staff)
    with pytest.raises(ValidationFailed):
        await service.provide_quote(staff, quote_id, Decimal("0"), Decimal("2"))
    with pytest.raises(ValidationFailed):
        await service.provide_quote(staff, quote_id, Decimal("10"), Decimal("2"), None, clock() - timedelta(days=1))
    assert (await find_quote(service.db, quote_id)).status == S.SUBMITTED


async def test_decline_roles_depend_on_stage(service, world, drive):
    submitted_id = (await drive(S.SUBMITTED)).id
    with pytest.raises(Forbidden):
        await service.decline(ctx_for(world.acme_admin), submitted_id)
    declined = await service.decline(ctx_for(world.staff), submitted_id, "Not serviceable")
    assert declined.status == S.DECLINED

    quoted_id = (await drive(S.QUOTED)).id
    with pytest.raises(Forbidden):
        await service.decline(ctx_for(world.staff), quoted_id)
    assert (await service.decline(ctx_for(world.acme_admin), quoted_id)).status == S.DECLINED


async def test_declined_is_terminal(service, world, drive):
    quote = await drive(S.DECLINED)
    with pytest.raises(InvalidTransition):
        await service.submit(ctx_for(world.acme_client), quote.id)


# Expiry


async def test_expired_validity_blocks_approval(service, world, drive, clock):
    quote_id = (await drive(S.QUOTED, valid_for=timedelta(days=1))).id
    clock.advance(days=2)
    with pytest.raises(QuoteExpired):
        await service.approve(ctx_for(world.acme_admin), quote_id)
    assert (await find_quote(service.db, quote_id)).status == S.QUOTED


async def test_expired_quote_can_be_renewed_then_approved(service, world, drive, clock, notifier):
    quote = await drive(S.QUOTED, valid_for=timedelta(days=1))
    clock.advance(days=2)
    staff = ctx_for(world.staff)
    await service.mark_expired(staff, quote.id)
    renewed = await service.provide_quote(
        staff, quote.id, Decimal("1300"), Decimal("6"), "Renewed", clock() + timedelta(days=7)
    )
    assert renewed.status == S.QUOTED
    assert notifier.kinds[-2:] == ["expired", "renewed"]
    assert (await service.approve(ctx_for(world.acme_admin), quote.id)).status == S.APPROVED


async def test_notify_expiring_quotes(db, service, world, drive, clock):
    soon = await drive(S.QUOTED, valid_for=timedelta(days=2))
    await drive(S.QUOTED, valid_for=timedelta(days=10))
    await drive(S.QUOTED, valid_for=None)

    recorder = RecordingNotifier()
    sent = await notify_expiring_quotes(db, now=clock(), notifier=recorder)
    assert sent == 1
    assert [(e.quote_id, e.event_kind.value) for e in recorder.events] == [(soon.id, "expiring")]
    assert (await find_quote(db, soon.id)).status == S.QUOTED


# Conversion


async def test_convert_creates_exactly_one_work_order(service, world, drive, db):
    quote = await drive(S.APPROVED)
    staff = ctx_for(world.staff)
    converted, work_order = await service.convert_to_work_order(staff, quote.id, po_number="PO-77")
    assert converted.status == S.CONVERTED
    assert converted.converted_to_work_order_id == work_order.id
    assert work_order.tenant_id == world.acme.id
    assert work_order.job_no == "RBWO000001"
    assert work_order.authorized_email == quote.contact_email
    assert work_order.quote_number == quote.quote_number
    assert work_order.po_number == "PO-77"

    quote_id, work_order_id = quote.id, work_order.id
    with pytest.raises(AlreadyConverted) as exc:
        await service.convert_to_work_order(staff, quote_id)
    assert exc.value.payload["existing_work_order_id"] == work_order_id
    assert await count_work_orders_for_quote(db, quote_id) == 1


async def test_work_order_takes_quote_tenant_not_switched_context(service, world, drive):
    quote = await drive(S.APPROVED)
    _, work_order = await service.convert_to_work_order(ctx_for(world.staff, switch_to=world.globex.id), quote.id)
    assert work_order.tenant_id == world.acme.id


async def test_job_numbers_increment_per_tenant(service, world, drive):
    staff = ctx_for(world.staff)
    first = await drive(S.APPROVED)
    second = await drive(S.APPROVED)
    _, wo1 = await service.convert_to_work_order(staff, first.id)
    _, wo2 = await service.convert_to_work_order(staff, second.id)
    assert (wo1.job_no, wo2.job_no) == ("RBWO000001", "RBWO000002")


async def test_conversion_after_hand_typed_webhook_job_number(db, service, world, drive):
    staff = ctx_for(world.staff)
    first = await drive(S.APPROVED)
    _, wo1 = await service.convert_to_work_order(staff, first.id)
    await ingest_work_order(
        db,
        "ACME",
        {
            "job_no": "RBWOX1",
            "supplier_name": "Upstream",
            "property_name": "Dock 4",
            "description": "Entered by hand upstream",
        },
    )
    await db.commit()

    second = await drive(S.APPROVED)
    _, wo2 = await service.convert_to_work_order(staff, second.id)
    assert (wo1.job_no, wo2.job_no) == ("RBWO000001", "RBWO000002")


async def test_convert_requires_approval(service, world, drive):
    quote = await drive(S.QUOTED)
    with pytest.raises(InvalidTransition):
        await service.convert_to_work_order(ctx_for(world.staff), quote.id)


# Races


async def test_sequential_double_approve(service, world, drive):
    quote = await drive(S.QUOTED)
    manager = ctx_for(world.acme_admin)
    await service.approve(manager, quote.id)
    with pytest.raises(InvalidTransition):
        await service.approve(manager, quote.id)


async def test_concurrent_approve_only_one_wins(session_maker, world, drive, clock):
    quote = await drive(S.QUOTED)
    manager = ctx_for(world.acme_admin)
    admin = ctx_for(world.admin)

    async with session_maker() as db_a, session_maker() as db_b:
        winner = QuoteService(db_b, clock=clock)
        loser = InterleavedQuoteService(db_a, lambda: winner.approve(admin, quote.id), clock=clock)
        with pytest.raises(Conflict):
            await loser.approve(manager, quote.id)

        stored = await find_quote(db_a, quote.id)
        assert stored.status == S.APPROVED


async def test_concurrent_approve_retry_gives_definitive_answer(session_maker, world, drive, clock):
    quote = await drive(S.QUOTED)
    manager = ctx_for(world.acme_admin)

    async with session_maker() as db_a, session_maker() as db_b:
        winner = QuoteService(db_b, clock=clock)
        loser = InterleavedQuoteService(db_a, lambda: winner.approve(manager, quote.id), clock=clock)
        with pytest.raises(InvalidTransition):
            await retry_on_conflict(lambda: loser.approve(manager, quote.id))


async def test_concurrent_convert_never_double_converts(session_maker, world, drive, clock):
    quote = await drive(S.APPROVED)
    staff = ctx_for(world.staff)

    async with session_maker() as db_a, session_maker() as db_b:
        winner = QuoteService(db_b, clock=clock)
        loser = InterleavedQuoteService(
            db_a, lambda: winner.convert_to_work_order(staff, quote.id), clock=clock
        )
        with pytest.raises(AlreadyConverted) as exc:
            await loser.convert_to_work_order(staff, quote.id)

        assert await count_work_orders_for_quote(db_a, quote.id) == 1
        stored = await find_quote(db_a, quote.id)
        assert exc.value.payload["existing_work_order_id"] == stored.converted_to_work_order_id
        assert (await find_work_order(db_a, stored.converted_to_work_order_id)).created_from_quote_id == quote.id


# Isolation and reads


async def test_other_tenant_cannot_see_quote(service, world, drive):
    quote_id = (await drive(S.QUOTED)).id
    outsider = ctx_for(world.globex_admin)
    with pytest.raises(OutOfScope):
        await service.get_quote(outsider, quote_id)
    with pytest.raises(OutOfScope):
        await service.approve(outsider, quote_id)
    rows, total = await service.list_quotes(outsider)
    assert rows == [] and total == 0


async def test_list_scoping_and_filters(service, world, drive):
    await drive(S.DRAFT)
    await drive(S.SUBMITTED)
    await service.create_quote(
        ctx_for(world.globex_admin), quote_data(is_urgent=True, property_name="Globex Tower")
    )

    _, staff_total = await service.list_quotes(ctx_for(world.staff))
    assert staff_total == 3
    _, switched_total = await service.list_quotes(ctx_for(world.staff, switch_to=world.globex.id))
    assert switched_total == 1
    _, acme_total = await service.list_quotes(ctx_for(world.acme_client))
    assert acme_total == 2

    rows, _ = await service.list_quotes(ctx_for(world.staff), status=S.SUBMITTED)
    assert [q.status for q in rows] == [S.SUBMITTED]
    rows, _ = await service.list_quotes(ctx_for(world.staff), search="globex")
    assert [q.tenant_id for q in rows] == [world.globex.id]
    rows, total = await service.list_quotes(ctx_for(world.acme_client), tenant_id=world.globex.id)
    assert total == 0


async def test_summary_counts(service, world, drive):
    await drive(S.DRAFT)
    await drive(S.QUOTED)
    await service.create_quote(ctx_for(world.globex_admin), quote_data(is_urgent=True))

    acme = await service.summary(ctx_for(world.acme_admin))
    assert acme["draft"] == 1 and acme["quoted"] == 1 and acme["total"] == 2
    assert acme["urgent"] == 0
    everything = await service.summary(ctx_for(world.admin))
    assert everything["total"] == 3 and everything["urgent"] == 1


async def test_messages_closed_on_terminal_quotes(service, world, drive):
    client = ctx_for(world.acme_client)
    open_quote = await drive(S.DRAFT)
    msg = await service.add_message(client, open_quote.id, "  Gate code is 1234  ")
    assert msg.message == "Gate code is 1234"
    assert msg.message_type == "comment"

    closed = await drive(S.DECLINED)
    with pytest.raises(InvalidTransition):
        await service.add_message(client, closed.id, "Why?")


async def test_notifier_failure_does_not_undo_transition(db, world, clock):
    service = QuoteService(db, notifier=BrokenNotifier(), clock=clock)
    client = ctx_for(world.acme_client)
    quote = await service.create_quote(client, quote_data())
    submitted = await service.submit(client, quote.id)
    assert submitted.status == S.SUBMITTED
    assert (await find_quote(db, quote.id)).status == S.SUBMITTED
