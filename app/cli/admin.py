import click
from app.core.database import SessionLocal, engine, Base
from app.core.firebase import init_firebase
from app.models.inquiry import InquiryStatus
from app.services.account_service import AccountService
from app.services.approval_service import ApprovalService
from app import models  # noqa: F401
import logging

logger = logging.getLogger(__name__)


def _setup():
    init_firebase()
    Base.metadata.create_all(bind=engine)


@click.group()
def cli():
    """InspecAI account administration commands"""
    pass


@cli.command()
@click.option('--all', 'show_all', is_flag=True, help='Include resolved inquiries')
def inquiries(show_all):
    """List plan-change and team-member inquiries"""
    _setup()
    db = SessionLocal()
    try:
        service = ApprovalService()
        status = None if show_all else InquiryStatus.PENDING
        plan_inquiries = service.list_plan_inquiries(db, status)
        team_inquiries = service.list_team_inquiries(db, status)

        if not plan_inquiries and not team_inquiries:
            click.echo("No inquiries found")
            return

        if plan_inquiries:
            click.echo(f"\nPlan inquiries ({len(plan_inquiries)}):\n")
            for i in plan_inquiries:
                click.echo(
                    f"  - {i.id}  {i.user_email} -> {i.requested_plan.value} "
                    f"[{i.status.value}] submitted {i.submitted_at:%Y-%m-%d %H:%M}")
        if team_inquiries:
            click.echo(f"\nTeam member inquiries ({len(team_inquiries)}):\n")
            for i in team_inquiries:
                click.echo(
                    f"  - {i.id}  {i.owner_email} adds {i.member_email} "
                    f"[{i.status.value}] submitted {i.submitted_at:%Y-%m-%d %H:%M}")
    except Exception as e:
        logger.error(f"CLI error: {e}")
        click.echo(f"❌ Error: {e}", err=True)
    finally:
        db.close()


@cli.command('approve-plan')
@click.argument('inquiry_id')
def approve_plan(inquiry_id):
    """Approve a pending plan inquiry"""
    _setup()
    db = SessionLocal()
    try:
        result = ApprovalService().approve_plan_inquiry(db, inquiry_id)
        user = result.updated_user
        end = f"{user.subscription_end_date:%Y-%m-%d}" if user.subscription_end_date else "never"
        click.echo(f"✓ {user.email} is now on {user.plan.value} (ends {end})")
    except Exception as e:
        logger.error(f"CLI error: {e}")
        click.echo(f"❌ Error: {e}", err=True)
    finally:
        db.close()


@cli.command('reject-plan')
@click.argument('inquiry_id')
def reject_plan(inquiry_id):
    """Reject a pending plan inquiry"""
    _setup()
    db = SessionLocal()
    try:
        result = ApprovalService().reject_plan_inquiry(db, inquiry_id)
        click.echo(f"✓ Rejected plan inquiry {inquiry_id} for {result.updated_user.email}")
    except Exception as e:
        logger.error(f"CLI error: {e}")
        click.echo(f"❌ Error: {e}", err=True)
    finally:
        db.close()


@cli.command('approve-member')
@click.argument('inquiry_id')
def approve_member(inquiry_id):
    """Approve a pending team-member inquiry"""
    _setup()
    db = SessionLocal()
    try:
        result = ApprovalService().approve_team_member_inquiry(db, inquiry_id)
        owner = result.updated_users[0]
        click.echo(f"✓ Team of {owner.email} now has {len(owner.team.members)} member(s)")
    except Exception as e:
        logger.error(f"CLI error: {e}")
        click.echo(f"❌ Error: {e}", err=True)
    finally:
        db.close()


@cli.command('reject-member')
@click.argument('inquiry_id')
def reject_member(inquiry_id):
    """Reject a pending team-member inquiry"""
    _setup()
    db = SessionLocal()
    try:
        result = ApprovalService().reject_team_member_inquiry(db, inquiry_id)
        click.echo(f"✓ Rejected team inquiry {inquiry_id} for {result.updated_owner.email}")
    except Exception as e:
        logger.error(f"CLI error: {e}")
        click.echo(f"❌ Error: {e}", err=True)
    finally:
        db.close()


@cli.command('refresh-statuses')
def refresh_statuses():
    """Recompute subscription status for every account"""
    _setup()
    db = SessionLocal()
    try:
        changed = AccountService().refresh_all_statuses(db)
        click.echo(f"✓ Updated subscription status for {changed} account(s)")
    except Exception as e:
        logger.error(f"CLI error: {e}")
        click.echo(f"❌ Error: {e}", err=True)
    finally:
        db.close()


if __name__ == '__main__':
    cli()
