from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from dealflow.core.exceptions import NotFoundError, ValidationError
from dealflow.models import Company, Contact, DealStatus
from dealflow.orchestration.state_machine import InvalidTransitionError
from dealflow.schemas.deals import DealCreateRequest, DealUpdateRequest
from dealflow.services.deal_service import DEAL_TRANSITIONS, DealService
from dealflow.services.stage_service import StageService


def _pipeline(session):
    stages = StageService(db=session)
    stages.ensure_default_stages()
    return DealService(db=session, stages=stages), stages.list_stages()


def test_create_deal_defaults_to_first_active_stage(session):
    service, stages = _pipeline(session)

    deal = service.create_deal(1, DealCreateRequest(title="  Acme  "))

    assert deal.title == "Acme"
    assert deal.stage_id == stages[0].id
    assert deal.status == DealStatus.OPEN
    assert deal.currency == "BRL"
    assert deal.probability == 50
    assert deal.closed_at is None


def test_create_deal_skips_inactive_first_stage(session):
    service, stages = _pipeline(session)
    StageService(db=session).update_stage(stages[0].id, is_active=False)

    deal = service.create_deal(1, DealCreateRequest(title="Acme"))

    assert deal.stage_id == stages[1].id


def test_create_deal_without_active_stages_is_unstaged(session):
    service = DealService(db=session)

    deal = service.create_deal(1, DealCreateRequest(title="Acme"))

    assert deal.stage_id is None
    board = service.list_deals_grouped_by_stage(1)
    assert [d.id for d in board.unstaged] == [deal.id]


def test_create_deal_with_explicit_stage(session):
    service, stages = _pipeline(session)

    deal = service.create_deal(
        1,
        DealCreateRequest(
            title="Acme",
            value=Decimal("1500.50"),
            currency="usd",
            probability=70,
            expected_close_date="2026-11-30T00:00:00.000Z",
            stage_id=stages[2].id,
        ),
    )

    assert deal.stage_id == stages[2].id
    assert deal.value == Decimal("1500.50")
    assert deal.currency == "USD"
    assert deal.probability == 70
    assert deal.expected_close_date == date(2026, 11, 30)


def test_create_deal_with_unknown_stage_raises(session):
    service, _stages = _pipeline(session)
    with pytest.raises(NotFoundError):
        service.create_deal(1, DealCreateRequest(title="Acme", stage_id=999))


def test_create_deal_requires_title(session):
    service, _stages = _pipeline(session)
    with pytest.raises(ValidationError):
        service.create_deal(1, DealCreateRequest(title="   "))


def test_create_deal_links_only_owned_contact_and_company(session):
    service, _stages = _pipeline(session)
    mine = Contact(owner_id=1, first_name="Ana", last_name="Silva")
    theirs = Company(owner_id=2, name="Other Corp")
    session.add_all([mine, theirs])
    session.commit()

    deal = service.create_deal(
        1, DealCreateRequest(title="Acme", contact_id=mine.id, company_id=theirs.id)
    )

    assert deal.contact_id == mine.id
    assert deal.company_id is None


def test_create_deal_ignores_missing_contact(session):
    service, _stages = _pipeline(session)
    deal = service.create_deal(1, DealCreateRequest(title="Acme", contact_id=12345))
    assert deal.contact_id is None


def test_scenario_move_then_lose_then_move_rejected(session):
    service, stages = _pipeline(session)
    deal = service.create_deal(1, DealCreateRequest(title="Acme", probability=40))

    moved = service.move_deal_to_stage(1, deal.id, stages[1].id)
    assert moved.stage_id == stages[1].id

    lost = service.mark_lost(1, deal.id, reason="  Budget cut  ")
    assert lost.status == DealStatus.LOST
    assert lost.probability == 0
    assert lost.lost_reason == "Budget cut"
    assert lost.closed_at is not None

    with pytest.raises(ValidationError, match="Only open deals can be moved"):
        service.move_deal_to_stage(1, deal.id, stages[0].id)
    assert service.get_deal(1, deal.id).stage_id == stages[1].id


def test_mark_won_sets_probability_and_closed_at(session):
    service, _stages = _pipeline(session)
    deal = service.create_deal(1, DealCreateRequest(title="Acme", probability=10))

    won = service.mark_won(1, deal.id)

    assert won.status == DealStatus.WON
    assert won.probability == 100
    assert won.closed_at is not None


def test_mark_lost_without_reason(session):
    service, _stages = _pipeline(session)
    deal = service.create_deal(1, DealCreateRequest(title="Acme"))

    lost = service.mark_lost(1, deal.id)

    assert lost.lost_reason is None
    assert lost.probability == 0


def test_closed_deals_cannot_be_closed_again(session):
    service, _stages = _pipeline(session)
    won = service.create_deal(1, DealCreateRequest(title="Won"))
    lost = service.create_deal(1, DealCreateRequest(title="Lost"))
    service.mark_won(1, won.id)
    service.mark_lost(1, lost.id)

    with pytest.raises(ValidationError, match="already won"):
        service.mark_won(1, won.id)
    with pytest.raises(InvalidTransitionError):
        service.mark_lost(1, won.id)
    with pytest.raises(InvalidTransitionError):
        service.mark_won(1, lost.id)


def test_deal_transitions_only_leave_open():
    assert DEAL_TRANSITIONS.can_transition("OPEN", "WON")
    assert DEAL_TRANSITIONS.can_transition("OPEN", "ABANDONED")
    assert not DEAL_TRANSITIONS.can_transition("WON", "OPEN")
    assert DEAL_TRANSITIONS.is_terminal("LOST")


def test_foreign_owner_sees_not_found(session):
    service, stages = _pipeline(session)
    deal = service.create_deal(1, DealCreateRequest(title="Acme"))

    with pytest.raises(NotFoundError):
        service.get_deal(2, deal.id)
    with pytest.raises(NotFoundError):
        service.move_deal_to_stage(2, deal.id, stages[1].id)
    with pytest.raises(NotFoundError):
        service.mark_won(2, deal.id)
    with pytest.raises(NotFoundError):
        service.delete_deal(2, deal.id)

    assert service.get_deal(1, deal.id).status == DealStatus.OPEN


def test_move_to_unknown_stage_raises(session):
    service, stages = _pipeline(session)
    deal = service.create_deal(1, DealCreateRequest(title="Acme"))

    with pytest.raises(NotFoundError):
        service.move_deal_to_stage(1, deal.id, 999)
    assert service.get_deal(1, deal.id).stage_id == stages[0].id


def test_list_deals_is_owner_scoped_and_searchable(session):
    service, _stages = _pipeline(session)
    company = Company(owner_id=1, name="Globex")
    session.add(company)
    session.commit()
    service.create_deal(1, DealCreateRequest(title="Cloud migration", company_id=company.id))
    service.create_deal(1, DealCreateRequest(title="Support renewal", description="yearly cloud plan"))
    service.create_deal(1, DealCreateRequest(title="Hardware"))
    service.create_deal(2, DealCreateRequest(title="Cloud for someone else"))

    assert len(service.list_deals(1)) == 3
    assert {deal.title for deal in service.list_deals(1, search="cloud")} == {"Cloud migration", "Support renewal"}
    assert [deal.title for deal in service.list_deals(1, search="globex")] == ["Cloud migration"]


def test_list_deals_filters_by_status(session):
    service, _stages = _pipeline(session)
    open_deal = service.create_deal(1, DealCreateRequest(title="Open"))
    won_deal = service.create_deal(1, DealCreateRequest(title="Won"))
    service.mark_won(1, won_deal.id)

    assert [deal.id for deal in service.list_deals(1, status=DealStatus.OPEN)] == [open_deal.id]
    assert [deal.id for deal in service.list_deals(1, status=DealStatus.WON)] == [won_deal.id]


def test_board_groups_open_deals_under_active_stages(session):
    service, stages = _pipeline(session)
    StageService(db=session).update_stage(stages[4].id, is_active=False)
    first = service.create_deal(1, DealCreateRequest(title="First"))
    second = service.create_deal(1, DealCreateRequest(title="Second", stage_id=stages[2].id))
    hidden = service.create_deal(1, DealCreateRequest(title="Hidden", stage_id=stages[4].id))
    closed = service.create_deal(1, DealCreateRequest(title="Closed"))
    service.mark_won(1, closed.id)

    board = service.list_deals_grouped_by_stage(1)

    assert [stage.id for stage in board.stages] == [stage.id for stage in stages[:4]]
    assert [deal.id for deal in board.deals_by_stage[stages[0].id]] == [first.id]
    assert [deal.id for deal in board.deals_by_stage[stages[2].id]] == [second.id]
    assert board.deals_by_stage[stages[1].id] == []
    assert [deal.id for deal in board.unstaged] == [hidden.id]
    assert closed.id not in {deal.id for deal in board.deals}


def test_board_can_include_closed_deals(session):
    service, _stages = _pipeline(session)
    closed = service.create_deal(1, DealCreateRequest(title="Closed"))
    service.mark_lost(1, closed.id)

    board = service.list_deals_grouped_by_stage(1, include_closed=True)

    assert closed.id in {deal.id for deal in board.deals}


def test_update_deal_applies_only_sent_fields(session):
    service, stages = _pipeline(session)
    deal = service.create_deal(1, DealCreateRequest(title="Acme", value=Decimal("100"), description="keep"))

    updated = service.update_deal(
        1, deal.id, DealUpdateRequest(title="Acme 2", stage_id=stages[3].id, probability=80)
    )

    assert updated.title == "Acme 2"
    assert updated.stage_id == stages[3].id
    assert updated.probability == 80
    assert updated.value == Decimal("100")
    assert updated.description == "keep"


def test_update_deal_status_goes_through_transitions(session):
    service, _stages = _pipeline(session)
    deal = service.create_deal(1, DealCreateRequest(title="Acme"))

    won = service.update_deal(1, deal.id, DealUpdateRequest(status=DealStatus.WON, probability=20))
    assert won.status == DealStatus.WON
    assert won.probability == 100

    # Re-sending the current status is not a transition.
    same = service.update_deal(1, deal.id, DealUpdateRequest(status=DealStatus.WON, title="Renamed"))
    assert same.title == "Renamed"

    with pytest.raises(InvalidTransitionError):
        service.update_deal(1, deal.id, DealUpdateRequest(status=DealStatus.OPEN))


def test_update_deal_to_abandoned_keeps_probability(session):
    service, _stages = _pipeline(session)
    deal = service.create_deal(1, DealCreateRequest(title="Acme", probability=35))

    abandoned = service.update_deal(1, deal.id, DealUpdateRequest(status=DealStatus.ABANDONED))

    assert abandoned.status == DealStatus.ABANDONED
    assert abandoned.closed_at is not None
    assert abandoned.probability == 35


def test_delete_deal(session):
    service, _stages = _pipeline(session)
    deal = service.create_deal(1, DealCreateRequest(title="Acme"))

    service.delete_deal(1, deal.id)

    with pytest.raises(NotFoundError):
        service.get_deal(1, deal.id)
