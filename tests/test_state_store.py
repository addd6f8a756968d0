"""
Tests for mapping workflow state to database rows
"""

from datetime import timedelta

from sqlalchemy.orm import Session

from app.models.inquiry import InquiryStatus
from app.models.notification import Notification, Severity
from app.models.plan import PlanTier
from app.models.subscription_history import SubscriptionHistory
from app.models.user import AccountRole, User
from app.schemas.state import (MemberRole, NotificationState, OwnerRole,
                               PlanInquiryState, TeamInquiryState)
from app.services.state_store import StateStore
from app.workflow.state import AppState
from tests.factories import NOW, make_user, pro_user


def _notification(n, read=False):
    return NotificationState(
        id=f"n{n}",
        message=f"message {n}",
        severity=Severity.INFO,
        created_at=NOW + timedelta(minutes=n),
        read=read,
    )


def _sample_state() -> AppState:
    owner = make_user(
        "owner@example.com",
        name="Olivia",
        role=OwnerRole(members=("bob@example.com",), pending_members=("carol@example.com",)),
        notifications=(_notification(1, read=True), _notification(2)),
        crm_notes="met at trade fair",
    )
    bob = pro_user("bob@example.com", role=MemberRole(member_of="owner@example.com"))
    plan_inquiry = PlanInquiryState(
        id="p1",
        user_email="owner@example.com",
        user_name="Olivia",
        requested_plan=PlanTier.CUSTOM,
        submitted_at=NOW,
        company_name="Acme",
    )
    team_inquiry = TeamInquiryState(
        id="t1",
        owner_email="owner@example.com",
        owner_name="Olivia",
        member_email="carol@example.com",
        submitted_at=NOW,
        payment_proof_image="data:image/png;base64,AAA",
    )
    return AppState(users=(owner, bob), plan_inquiries=(plan_inquiry,), team_inquiries=(team_inquiry,))


def _by_email(state: AppState) -> dict:
    return {u.email: u for u in state.users}


class TestStateStore:

    def test_save_and_load_round_trip(self, db_session: Session):
        store = StateStore()
        state = _sample_state()

        store.save(db_session, AppState(), state)
        db_session.commit()
        loaded = store.load(db_session)

        assert _by_email(loaded) == _by_email(state)
        assert loaded.plan_inquiries == state.plan_inquiries
        assert loaded.team_inquiries == state.team_inquiries

    def test_role_columns(self, db_session: Session):
        StateStore().save(db_session, AppState(), _sample_state())
        db_session.commit()

        owner = db_session.get(User, "owner@example.com")
        bob = db_session.get(User, "bob@example.com")
        assert owner.account_role == AccountRole.OWNER
        assert owner.team_members == ["bob@example.com"]
        assert owner.team_pending_members == ["carol@example.com"]
        assert bob.account_role == AccountRole.MEMBER
        assert bob.member_of == "owner@example.com"

    def test_save_does_not_commit(self, db_session: Session):
        StateStore().save(db_session, AppState(), _sample_state())
        db_session.rollback()
        assert db_session.query(User).count() == 0

    def test_evicted_notifications_are_deleted(self, db_session: Session):
        store = StateStore()
        before = AppState(users=(make_user("a@example.com", notifications=(_notification(1), _notification(2))),))
        store.save(db_session, AppState(), before)
        db_session.commit()

        user = before.users[0]
        trimmed = user.model_copy(update={"notifications": (_notification(2), _notification(3))})
        store.save(db_session, before, before.with_user(trimmed))
        db_session.commit()

        rows = db_session.query(Notification).order_by(Notification.position).all()
        assert [n.id for n in rows] == ["n2", "n3"]
        assert [n.position for n in rows] == [0, 1]

    def test_removed_user_is_deleted_with_notifications(self, db_session: Session):
        store = StateStore()
        state = _sample_state()
        store.save(db_session, AppState(), state)
        db_session.commit()

        store.save(db_session, state, state.without_user("owner@example.com"))
        db_session.commit()

        assert db_session.get(User, "owner@example.com") is None
        assert db_session.query(Notification).count() == 0
        # Inquiry history outlives the account
        assert db_session.query(User).count() == 1
        assert len(store.load(db_session).plan_inquiries) == 1

    def test_only_changed_inquiries_are_written(self, db_session: Session):
        store = StateStore()
        state = _sample_state()
        store.save(db_session, AppState(), state)
        db_session.commit()

        resolved = state.plan_inquiries[0].model_copy(update={"status": InquiryStatus.APPROVED, "resolved_at": NOW})
        store.save(db_session, state, state.with_plan_inquiry(resolved))
        db_session.commit()

        loaded = store.load(db_session)
        assert loaded.plan_inquiries[0].status == InquiryStatus.APPROVED
        assert loaded.team_inquiries[0].status == InquiryStatus.PENDING

    def test_plan_change_is_recorded_in_history(self, db_session: Session):
        store = StateStore()
        before = AppState(users=(make_user("a@example.com"),))
        store.save(db_session, AppState(), before)
        db_session.commit()

        upgraded = before.users[0].model_copy(update={
            "plan": PlanTier.PRO,
            "subscription_start_date": NOW,
            "subscription_end_date": NOW + timedelta(days=30),
        })
        store.save(db_session, before, before.with_user(upgraded))
        db_session.commit()

        history = db_session.query(SubscriptionHistory).all()
        assert len(history) == 1
        assert history[0].action == "upgraded"
        assert history[0].from_plan == "free"
        assert history[0].to_plan == "pro"
