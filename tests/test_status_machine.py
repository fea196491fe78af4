"""Tests de la table des transitions et des capacités / Transition table and capabilities tests."""

import pytest

from dk_automotive.models.mission import Mission, MissionStatus
from dk_automotive.models.user import Profile, UserRole
from dk_automotive.services.capabilities import AuthContext, Capabilities
from dk_automotive.services.status_machine import (
    TERMINAL_STATUSES,
    TRANSITIONS,
    ActorKind,
    get_transition,
    is_terminal,
    next_statuses,
)


def _mission(status=MissionStatus.EN_ACCEPTATION, client_id="c1", chauffeur_id="d1"):
    return Mission(status=status, client_id=client_id, chauffeur_id=chauffeur_id)


def test_terminal_statuses_have_no_outgoing_edges():
    for status in TERMINAL_STATUSES:
        assert next_statuses(status) == []
        assert is_terminal(status)


def test_forward_path():
    path = [
        MissionStatus.EN_ACCEPTATION,
        MissionStatus.ACCEPTE,
        MissionStatus.PRISE_EN_CHARGE,
        MissionStatus.LIVRAISON,
        MissionStatus.LIVRE,
        MissionStatus.TERMINE,
    ]
    for source, target in zip(path, path[1:]):
        assert get_transition(source, target) is not None


def test_no_skipping_or_going_back():
    assert get_transition(MissionStatus.ACCEPTE, MissionStatus.LIVRE) is None
    assert get_transition(MissionStatus.LIVRE, MissionStatus.ACCEPTE) is None
    assert get_transition(MissionStatus.ACCEPTE, MissionStatus.ANNULE) is None


def test_incident_is_admin_only_and_halting():
    for source in MissionStatus:
        transition = get_transition(source, MissionStatus.INCIDENT)
        if source in TERMINAL_STATUSES or source == MissionStatus.INCIDENT:
            assert transition is None
        else:
            assert transition.actors == frozenset({ActorKind.ADMIN})
    assert next_statuses(MissionStatus.INCIDENT) == []


def test_delivery_requires_confirmation_and_sets_completion():
    transition = get_transition(MissionStatus.LIVRAISON, MissionStatus.LIVRE)
    assert transition.requires_confirmation
    assert transition.sets_completion_date
    assert transition.requires_driver


def test_accepting_is_admin_only():
    transition = TRANSITIONS[(MissionStatus.EN_ACCEPTATION, MissionStatus.ACCEPTE)]
    assert transition.actors == frozenset({ActorKind.ADMIN})


def test_capabilities_owner_can_cancel_only_in_acceptance():
    caps = Capabilities(user_id="c1", role=UserRole.CLIENT)
    assert caps.can_cancel(_mission())
    assert not caps.can_cancel(_mission(status=MissionStatus.ACCEPTE))
    assert caps.allowed_transitions(_mission()) == [MissionStatus.ANNULE]


def test_capabilities_other_client_sees_nothing():
    caps = Capabilities(user_id="c2", role=UserRole.CLIENT)
    assert not caps.can_view(_mission())
    assert not caps.can_cancel(_mission())


def test_capabilities_driver_forward_steps():
    caps = Capabilities(user_id="d1", role=UserRole.CHAUFFEUR)
    assert caps.allowed_transitions(_mission(status=MissionStatus.ACCEPTE)) == [MissionStatus.PRISE_EN_CHARGE]
    assert not caps.can_transition(_mission(status=MissionStatus.LIVRE), MissionStatus.TERMINE)
    assert not caps.can_transition(_mission(status=MissionStatus.ACCEPTE, chauffeur_id="d2"), MissionStatus.PRISE_EN_CHARGE)


def test_capabilities_admin_edit_blocked_on_terminal():
    caps = Capabilities(user_id="a1", role=UserRole.ADMIN)
    assert caps.can_edit_mission(_mission(status=MissionStatus.LIVRE))
    assert not caps.can_edit_mission(_mission(status=MissionStatus.TERMINE))
    assert not caps.can_edit_mission(_mission(status=MissionStatus.ANNULE))


def test_auth_context_lifecycle():
    profile = Profile(id="p1", email="p1@example.com", role=UserRole.CLIENT, profile_completed=False)
    ctx = AuthContext.init(profile)
    assert ctx.is_authenticated
    assert ctx.capabilities.role == UserRole.CLIENT

    profile.profile_completed = True
    ctx.update(profile)
    assert ctx.profile_completed

    ctx.teardown()
    assert not ctx.is_authenticated
    with pytest.raises(RuntimeError):
        ctx.capabilities
