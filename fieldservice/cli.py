import click
from flask.cli import with_appcontext

from fieldservice.extensions import db
from fieldservice.models.estimate import Estimate
from fieldservice.models.labor_rate_profile import LaborRateProfile
from fieldservice.models.org import Org
from fieldservice.models.org_membership import OrgMembership, ROLE_CHOICES, ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER
from fieldservice.models.user import User
from fieldservice.services.estimates import recalculate_totals
from fieldservice.utils.helpers import round_currency


def _org(org_id: int) -> Org:
    org = db.session.get(Org, org_id)
    if org is None:
        raise click.ClickException(f"Org id {org_id} not found")
    return org


def _user_by_email(email: str, required: bool = True):
    user = db.session.query(User).filter(db.func.lower(User.email) == email.strip().lower()).one_or_none()
    if user is None and required:
        raise click.ClickException(f"No user with email {email}")
    return user


def _add_user(org: Org, email: str, password: str, role: str, full_name=None) -> User:
    if _user_by_email(email, required=False) is not None:
        raise click.ClickException(f"User {email} already exists")
    user = User(email=email.strip(), full_name=full_name, org_id=org.id, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    db.session.add(OrgMembership(org_id=org.id, user_id=user.id, role=role))
    return user


@click.group()
def bootstrap():
    """First-run setup."""


@bootstrap.command("owner")
@click.option("--org-name", required=True)
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--full-name", default=None)
@with_appcontext
def bootstrap_owner(org_name, email, password, full_name):
    """Create (or reuse) an org by name and its first owner."""
    org = db.session.query(Org).filter(Org.name == org_name).one_or_none()
    if org is None:
        org = Org(name=org_name, is_active=True)
        db.session.add(org)
        db.session.flush()

    user = _add_user(org, email, password, ROLE_OWNER, full_name)
    db.session.commit()
    click.echo(f"Bootstrap complete: org_id={org.id} owner_user_id={user.id} email={user.email}")


@click.group()
def users():
    """Technician and office accounts."""


@users.command("create")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--org-id", type=int, required=True)
@click.option("--full-name", default=None)
@click.option("--role", type=click.Choice(ROLE_CHOICES), default=ROLE_MEMBER, show_default=True)
@with_appcontext
def users_create(email, password, org_id, full_name, role):
    user = _add_user(_org(org_id), email, password, role, full_name)
    db.session.commit()
    click.echo(f"User created id={user.id} email={user.email} org_id={org_id} role={role}")


@click.group()
def members():
    """Change a member's role inside an org."""


@members.command("promote")
@click.option("--org-id", type=int, required=True)
@click.option("--email", required=True)
@click.option("--role", type=click.Choice([ROLE_ADMIN, ROLE_OWNER]), required=True)
@with_appcontext
def members_promote(org_id, email, role):
    user = _user_by_email(email)
    _org(org_id)
    membership = OrgMembership.for_user(org_id, user.id)
    if membership is None:
        db.session.add(OrgMembership(org_id=org_id, user_id=user.id, role=role))
    else:
        membership.role = role
    db.session.commit()
    click.echo(f"{email} is now {role} in org {org_id}")


@members.command("demote")
@click.option("--org-id", type=int, required=True)
@click.option("--email", required=True)
@with_appcontext
def members_demote(org_id, email):
    user = _user_by_email(email)
    membership = OrgMembership.for_user(org_id, user.id)
    if membership is None:
        raise click.ClickException(f"{email} is not a member of org {org_id}")
    # an org always keeps at least one owner
    if membership.role == ROLE_OWNER and OrgMembership.owner_count(org_id) <= 1:
        raise click.ClickException("Refused: cannot demote the last owner of this org")

    membership.role = ROLE_MEMBER
    db.session.commit()
    click.echo(f"{email} is now member in org {org_id}")


@click.group("labor-rates")
def labor_rates():
    """Labor rate profile ops."""


@labor_rates.command("set")
@click.option("--org-id", type=int, required=True)
@click.option("--standard", type=float, required=True)
@click.option("--after-hours", type=float, required=True)
@click.option("--emergency", type=float, required=True)
@click.option("--name", default="Default")
@with_appcontext
def labor_rates_set(org_id, standard, after_hours, emergency, name):
    _org(org_id)
    if min(standard, after_hours, emergency) < 0:
        raise click.ClickException("Rates must be >= 0")

    db.session.query(LaborRateProfile).filter_by(org_id=org_id, is_active=True).update(
        {"is_active": False}, synchronize_session=False
    )
    row = LaborRateProfile(
        org_id=org_id,
        name=name,
        standard_rate=round_currency(standard),
        after_hours_rate=round_currency(after_hours),
        emergency_rate=round_currency(emergency),
        is_active=True,
    )
    db.session.add(row)
    db.session.commit()
    click.echo(f"Labor rate profile id={row.id} active for org {org_id}")


@click.group()
def estimates():
    """Estimate maintenance."""


@estimates.command("recalc")
@click.option("--org-id", type=int, default=None, help="Limit to one org")
@click.option("--dry-run", is_flag=True, default=False)
@with_appcontext
def estimates_recalc(org_id, dry_run):
    """Re-derive stored totals from stored line items."""
    query = db.session.query(Estimate)
    if org_id:
        query = query.filter(Estimate.org_id == org_id)

    changed = 0
    for est in query.order_by(Estimate.id).all():
        if recalculate_totals(est):
            changed += 1
            click.echo(f"{est.estimate_number or est.id}: total -> {est.total_amount}")

    if dry_run:
        db.session.rollback()
    else:
        db.session.commit()
    click.echo(f"{changed} estimate(s) {'would change' if dry_run else 'updated'}")


def register_cli(app):
    app.cli.add_command(bootstrap)
    app.cli.add_command(users)
    app.cli.add_command(members)
    app.cli.add_command(labor_rates)
    app.cli.add_command(estimates)
