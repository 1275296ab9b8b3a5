"""Tests for incident row-level visibility."""

import itertools

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ovr.models.incident import Incident, IncidentStatus
from ovr.services.errors import NotFoundError
from ovr.services.rbac import Principal, UserRole
from ovr.services.visibility import (
    IncidentQueryService,
    build_incident_visibility_filter,
    is_incident_visible,
)

from conftest import (
    OTHER_EMPLOYEE_ID,
    REPORTER_ID,
    SUPERVISOR_ID,
    make_principal,
)

VIEWER_ID = 40

FLAG_COMBINATIONS = list(itertools.product([False, True], repeat=2))


def viewer(role: UserRole) -> Principal:
    """A principal holding a single role who reported nothing."""
    return make_principal(VIEWER_ID, role)


class TestInMemoryRules:
    """Rules evaluated without a database."""

    @pytest.mark.parametrize("role", list(UserRole))
    @pytest.mark.parametrize("include_drafts,my_reports_only", FLAG_COMBINATIONS)
    def test_drafts_private_to_reporter(
        self, role: UserRole, include_drafts: bool, my_reports_only: bool
    ) -> None:
        """No role sees someone else's draft under any flag combination."""
        draft = Incident(
            id="OVR-2026-001",
            status=IncidentStatus.DRAFT.value,
            reporter_id=REPORTER_ID,
            supervisor_id=VIEWER_ID,
        )

        assert not is_incident_visible(
            draft, viewer(role), include_drafts, my_reports_only
        )

    def test_elevated_sees_all_submitted(self) -> None:
        """QI staff see incidents reported by anyone once submitted."""
        incident = Incident(status=IncidentStatus.QI_FINAL_REVIEW.value, reporter_id=5)

        assert is_incident_visible(incident, viewer(UserRole.QUALITY_ANALYST))
        assert is_incident_visible(incident, viewer(UserRole.EXECUTIVE))

    def test_elevated_own_draft_needs_flag(self) -> None:
        """Elevated roles see their own drafts only when asked."""
        draft = Incident(status=IncidentStatus.DRAFT.value, reporter_id=VIEWER_ID)
        qi = viewer(UserRole.QUALITY_MANAGER)

        assert not is_incident_visible(draft, qi)
        assert is_incident_visible(draft, qi, include_drafts=True)

    def test_supervisor_sees_supervised(self) -> None:
        """Supervisors see non-draft incidents they supervise."""
        incident = Incident(
            status=IncidentStatus.HOD_ASSIGNED.value,
            reporter_id=5,
            supervisor_id=VIEWER_ID,
        )
        unrelated = Incident(status=IncidentStatus.HOD_ASSIGNED.value, reporter_id=5)

        assert is_incident_visible(incident, viewer(UserRole.TEAM_LEAD))
        assert not is_incident_visible(unrelated, viewer(UserRole.SUPERVISOR))

    def test_employee_sees_own_only(self) -> None:
        """Plain employees see their own submitted reports only."""
        own = Incident(status=IncidentStatus.CLOSED.value, reporter_id=VIEWER_ID)
        other = Incident(status=IncidentStatus.CLOSED.value, reporter_id=5)

        assert is_incident_visible(own, viewer(UserRole.EMPLOYEE))
        assert not is_incident_visible(other, viewer(UserRole.EMPLOYEE))

    def test_my_reports_only_narrows_elevated(self) -> None:
        """my_reports_only overrides the elevated tier."""
        incident = Incident(status=IncidentStatus.CLOSED.value, reporter_id=5)

        assert not is_incident_visible(
            incident, viewer(UserRole.SUPER_ADMIN), my_reports_only=True
        )


class TestSqlFilter:
    """The SQL clause must agree with the in-memory predicate."""

    @pytest.fixture
    async def population(self, incident_factory) -> list[Incident]:
        """One incident per status for two reporters and a supervisor link."""
        incidents = []
        for reporter_id in (REPORTER_ID, VIEWER_ID):
            for status in IncidentStatus:
                incidents.append(
                    await incident_factory(
                        status,
                        reporter_id=reporter_id,
                        supervisor_id=VIEWER_ID if reporter_id == REPORTER_ID else None,
                    )
                )
        return incidents

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "role",
        [
            UserRole.EMPLOYEE,
            UserRole.SUPERVISOR,
            UserRole.DEPARTMENT_HEAD,
            UserRole.QUALITY_MANAGER,
            UserRole.SUPER_ADMIN,
        ],
    )
    @pytest.mark.parametrize("include_drafts,my_reports_only", FLAG_COMBINATIONS)
    async def test_sql_matches_predicate(
        self,
        async_session: AsyncSession,
        population: list[Incident],
        role: UserRole,
        include_drafts: bool,
        my_reports_only: bool,
    ) -> None:
        """Same rows from SQL as from evaluating each row in memory."""
        principal = viewer(role)
        result = await async_session.execute(
            select(Incident.id).where(
                build_incident_visibility_filter(
                    principal, include_drafts, my_reports_only
                )
            )
        )
        from_sql = set(result.scalars().all())

        expected = {
            incident.id
            for incident in population
            if is_incident_visible(incident, principal, include_drafts, my_reports_only)
        }

        assert from_sql == expected
        for incident in population:
            if incident.id in from_sql and incident.status == IncidentStatus.DRAFT.value:
                assert incident.reporter_id == VIEWER_ID


class TestIncidentQueryService:
    """Secure reads through the query service."""

    @pytest.mark.asyncio
    async def test_missing_and_hidden_look_alike(
        self, async_session: AsyncSession, incident_factory, other_employee: Principal
    ) -> None:
        """Absent and invisible incidents raise the same error."""
        hidden = await incident_factory(IncidentStatus.HOD_ASSIGNED)
        service = IncidentQueryService(async_session)

        with pytest.raises(NotFoundError) as missing:
            await service.get_incident_secure("OVR-2026-999", other_employee)
        with pytest.raises(NotFoundError) as invisible:
            await service.get_incident_secure(hidden.id, other_employee)

        assert missing.value.to_dict() == invisible.value.to_dict()

    @pytest.mark.asyncio
    async def test_reporter_reads_own_draft(
        self, async_session: AsyncSession, incident_factory, reporter: Principal
    ) -> None:
        """Reporters can open their own drafts."""
        draft = await incident_factory(IncidentStatus.DRAFT)

        fetched = await IncidentQueryService(async_session).get_incident_secure(
            draft.id, reporter
        )

        assert fetched.id == draft.id

    @pytest.mark.asyncio
    async def test_admin_cannot_read_draft(
        self, async_session: AsyncSession, incident_factory, super_admin: Principal
    ) -> None:
        """Drafts stay private even from super admins."""
        draft = await incident_factory(IncidentStatus.DRAFT)

        with pytest.raises(NotFoundError):
            await IncidentQueryService(async_session).get_incident_secure(
                draft.id, super_admin
            )

    @pytest.mark.asyncio
    async def test_list_incidents_with_total(
        self, async_session: AsyncSession, incident_factory, qi_manager: Principal
    ) -> None:
        """Listing pages results and reports the full total."""
        await incident_factory(IncidentStatus.DRAFT)
        for _ in range(3):
            await incident_factory(IncidentStatus.HOD_ASSIGNED)
        await incident_factory(IncidentStatus.CLOSED)

        service = IncidentQueryService(async_session)
        items, total = await service.list_incidents(qi_manager, limit=2)
        closed, closed_total = await service.list_incidents(
            qi_manager, status=IncidentStatus.CLOSED.value
        )

        assert total == 4
        assert len(items) == 2
        assert closed_total == 1
        assert closed[0].status == IncidentStatus.CLOSED.value

    @pytest.mark.asyncio
    async def test_supervisor_listing(
        self, async_session: AsyncSession, incident_factory, supervisor: Principal
    ) -> None:
        """Supervisors list supervised incidents but not supervised drafts."""
        supervised = await incident_factory(
            IncidentStatus.HOD_ASSIGNED, supervisor_id=SUPERVISOR_ID
        )
        await incident_factory(IncidentStatus.DRAFT, supervisor_id=SUPERVISOR_ID)
        await incident_factory(IncidentStatus.HOD_ASSIGNED)

        items, total = await IncidentQueryService(async_session).list_incidents(
            supervisor
        )

        assert total == 1
        assert items[0].id == supervised.id

    @pytest.mark.asyncio
    async def test_list_drafts(
        self,
        async_session: AsyncSession,
        incident_factory,
        reporter: Principal,
    ) -> None:
        """Only the caller's own drafts are listed."""
        mine = await incident_factory(IncidentStatus.DRAFT)
        await incident_factory(IncidentStatus.DRAFT, reporter_id=OTHER_EMPLOYEE_ID)
        await incident_factory(IncidentStatus.HOD_ASSIGNED)

        drafts = await IncidentQueryService(async_session).list_drafts(reporter)

        assert [d.id for d in drafts] == [mine.id]

    @pytest.mark.asyncio
    async def test_child_listings_respect_visibility(
        self,
        async_session: AsyncSession,
        investigation,
        corrective_action,
        qi_manager: Principal,
        other_employee: Principal,
    ) -> None:
        """Child records are listed only for visible incidents."""
        service = IncidentQueryService(async_session)

        investigations = await service.get_investigations_for_incident(
            investigation.incident_id, qi_manager
        )
        actions = await service.get_corrective_actions_for_incident(
            corrective_action.incident_id, qi_manager
        )

        assert [i.id for i in investigations] == [investigation.id]
        assert [a.id for a in actions] == [corrective_action.id]

        with pytest.raises(NotFoundError):
            await service.get_corrective_actions_for_incident(
                corrective_action.incident_id, other_employee
            )
