"""Unit tests for the weekly grid denormalizer."""

from datetime import date

import pytest

from comensales.domain.activity.models import (
    ActivityMealSubstitution,
    ActivityStatus,
    EnrollmentStatus,
)
from comensales.domain.residents.models import (
    ExceptionKind,
    MealException,
    UserMealData,
    WeeklyDefaultSelection,
)
from comensales.domain.schedule.config import ResidenceConfig
from comensales.domain.schedule.grid import (
    NOT_CONFIGURED_LABEL,
    ChoiceSource,
    MealGroup,
    build_cell,
    build_grid,
    build_groups,
    covers_group,
)
from comensales.domain.schedule.models import AlterationKind, MealSlotOverride
from comensales.domain.shared.errors import DuplicateSlotOverrideError, LookupGapError
from comensales.domain.shared.value_objects import DateRange

MONDAY = date(2025, 1, 6)
TUESDAY = date(2025, 1, 7)
WEDNESDAY = date(2025, 1, 8)
WEEK = DateRange(start=MONDAY, end=date(2025, 1, 12))
COMIDAS = MealGroup(name="Comidas", order=1)


@pytest.fixture
def three_meals(make_slot, make_alternative):
    """Breakfast, lunch and dinner served every day."""
    slots = (
        make_slot(id="tc-desayuno", name="Desayuno", group_name="Desayunos", group_order=0, day=None),
        make_slot(id="tc-comida", name="Comida", group_name="Comidas", group_order=1, day=None),
        make_slot(id="tc-cena", name="Cena", group_name="Cenas", group_order=2, day=None),
    )
    alternatives = tuple(
        make_alternative(f"alt-{s.id}", meal_slot_id=s.id, principal=True) for s in slots
    )
    return ResidenceConfig(residence_id="res-1", meal_slots=slots, alternatives=alternatives)


def _selection(**choices):
    return WeeklyDefaultSelection(
        id="sem-1", user_id="user-1", residence_id="res-1", choices=choices, last_updated=0
    )


def _exception(kind=ExceptionKind.CAMBIO_ALTERNATIVA, alternative_id="alt-B", id="exc-1"):
    return MealException(
        id=id,
        user_id="user-1",
        residence_id="res-1",
        date=MONDAY,
        meal_slot_id="tc-almuerzo-lunes",
        kind=kind,
        alternative_id=alternative_id,
    )


def _substitution(id="sub-1", day=MONDAY, group_name="Comidas"):
    return ActivityMealSubstitution(
        id=id, name="Picnic", group_name=group_name, group_order=1, date=day
    )


class TestBuildGroups:
    """Test build_groups()."""

    def test_sorted_by_order_then_name(self, make_slot, schedule_override):
        config = ResidenceConfig(
            residence_id="res-1",
            meal_slots=(
                make_slot(id="tc-cena", group_name="Cenas", group_order=2),
                make_slot(id="tc-comida", group_name="Comidas", group_order=1),
                make_slot(id="tc-comida-2", group_name="Comidas", group_order=3),
            ),
            slot_overrides=(
                MealSlotOverride(
                    id="tcm-1",
                    override_id=schedule_override.id,
                    kind=AlterationKind.AGREGAR,
                    group_name="Aperitivos",
                    group_order=1,
                ),
            ),
        )

        groups = build_groups(config)

        assert [(g.name, g.order) for g in groups] == [
            ("Aperitivos", 1),
            ("Comidas", 1),
            ("Cenas", 2),
        ]

    def test_inactive_slots_excluded(self, make_slot):
        config = ResidenceConfig(
            residence_id="res-1", meal_slots=(make_slot(active=False),)
        )
        assert build_groups(config) == []

    def test_override_without_order_excluded(self, base_config, schedule_override):
        mod = MealSlotOverride(
            id="tcm-1",
            override_id=schedule_override.id,
            kind=AlterationKind.AGREGAR,
            group_name="Meriendas",
        )
        config = base_config.model_copy(update={"slot_overrides": (mod,)})

        assert [g.name for g in build_groups(config)] == ["Comidas"]


class TestBuildGrid:
    """Test build_grid() shape and resolution."""

    def test_one_cell_per_date_and_group(self, user, three_meals):
        grid = build_grid(user, three_meals, WEEK, UserMealData())

        assert len(grid.cells) == 7 * 3
        assert grid.iso_week == "2025-W02"
        assert [g.name for g in grid.groups] == ["Desayunos", "Comidas", "Cenas"]
        assert all(len(cells) == 7 for cells in grid.by_group().values())

    def test_unconfigured_cell_is_empty(self, user, base_config):
        grid = build_grid(user, base_config, WEEK, UserMealData())

        assert grid.cell(MONDAY, "Comidas").configured is True
        tuesday = grid.cell(TUESDAY, "Comidas")
        assert tuesday.configured is False
        assert tuesday.meal_slot_name == NOT_CONFIGURED_LABEL == "No configurada"
        assert tuesday.available_alternative_ids == ()

    def test_week_label_ignores_sunday_extension(self, user, three_meals):
        extended = DateRange(start=date(2025, 1, 5), end=date(2025, 1, 12))

        grid = build_grid(user, three_meals, extended, UserMealData())

        assert grid.week_start == MONDAY
        assert grid.iso_week == "2025-W02"
        assert grid.cell(date(2025, 1, 5), "Cenas") is not None

    def test_week_label_from_today(self, user, three_meals):
        extended = DateRange(start=date(2025, 1, 5), end=date(2025, 1, 14))

        grid = build_grid(user, three_meals, extended, UserMealData(), today=WEDNESDAY)

        assert grid.iso_week == "2025-W02"

    def test_override_scenario(self, user, override_config):
        grid = build_grid(user, override_config, WEEK, UserMealData())

        cell = grid.cell(MONDAY, "Comidas")
        assert cell.meal_slot_name == "Almuerzo Especial"
        assert cell.altered is True
        assert cell.available_alternative_ids == ("alt-A",)

    def test_restricted_flags(self, restricted_user, base_config):
        cell = build_cell(MONDAY, COMIDAS, base_config, restricted_user)

        assert cell.available_alternative_ids == ("alt-A", "alt-B")
        assert cell.restricted_alternative_ids == ("alt-B",)
        assert cell.has_restricted

    def test_restricted_flags_follow_overrides(self, restricted_user, override_config):
        cell = build_cell(MONDAY, COMIDAS, override_config, restricted_user)

        assert cell.restricted_alternative_ids == ()

    def test_duplicate_slot_overrides_propagate(self, user, override_config, rename_almuerzo):
        twin = rename_almuerzo.model_copy(update={"id": "tcm-2"})
        config = override_config.model_copy(update={"slot_overrides": (rename_almuerzo, twin)})

        with pytest.raises(DuplicateSlotOverrideError):
            build_grid(user, config, WEEK, UserMealData())


class TestChoicePrecedence:
    """Test exception > activity > weekly selection > none."""

    def test_no_data_has_no_choice(self, user, base_config):
        cell = build_cell(MONDAY, COMIDAS, base_config, user, UserMealData())

        assert cell.current_choice_id is None
        assert cell.choice_source is ChoiceSource.NONE

    def test_weekly_selection(self, user, base_config):
        data = UserMealData(weekly_selection=_selection(**{"tc-almuerzo-lunes": "alt-A"}))

        cell = build_cell(MONDAY, COMIDAS, base_config, user, data)

        assert cell.current_choice_id == "alt-A"
        assert cell.weekly_choice_id == "alt-A"
        assert cell.choice_source is ChoiceSource.WEEKLY

    def test_exception_beats_weekly(self, user, base_config):
        data = UserMealData(
            weekly_selection=_selection(**{"tc-almuerzo-lunes": "alt-A"}),
            exceptions=(_exception(),),
        )

        cell = build_cell(MONDAY, COMIDAS, base_config, user, data)

        assert cell.current_choice_id == "alt-B"
        assert cell.exception_id == "exc-1"
        assert cell.weekly_choice_id == "alt-A"
        assert cell.choice_source is ChoiceSource.EXCEPTION

    def test_cancellation_clears_choice(self, user, base_config):
        data = UserMealData(
            weekly_selection=_selection(**{"tc-almuerzo-lunes": "alt-A"}),
            exceptions=(_exception(kind=ExceptionKind.CANCELACION_COMIDA, alternative_id=None),),
        )

        cell = build_cell(MONDAY, COMIDAS, base_config, user, data)

        assert cell.current_choice_id is None
        assert cell.choice_source is ChoiceSource.EXCEPTION

    def test_first_of_several_exceptions_wins(self, user, base_config):
        data = UserMealData(
            exceptions=(
                _exception(id="exc-1", alternative_id="alt-B"),
                _exception(id="exc-2", alternative_id="alt-A"),
            ),
        )

        cell = build_cell(MONDAY, COMIDAS, base_config, user, data)

        assert cell.exception_id == "exc-1"
        assert cell.current_choice_id == "alt-B"

    def test_exception_for_other_date_ignored(self, user, base_config):
        other_day = _exception().model_copy(update={"date": date(2025, 1, 13)})
        data = UserMealData(exceptions=(other_day,))

        assert build_cell(MONDAY, COMIDAS, base_config, user, data).exception_id is None

    def test_activity_beats_weekly(self, user, base_config, make_activity, make_enrollment):
        activity = make_activity(meal_plan=(_substitution(),))
        config = base_config.model_copy(update={"activities": (activity,)})
        data = UserMealData(
            weekly_selection=_selection(**{"tc-almuerzo-lunes": "alt-A"}),
            enrollments=(make_enrollment(),),
        )

        cell = build_cell(MONDAY, COMIDAS, config, user, data)

        assert cell.current_choice_id == "sub-1"
        assert cell.choice_source is ChoiceSource.ACTIVITY
        assert cell.enrolled_activity_ids == ("act-1",)
        assert cell.activity_substitution_ids == ("sub-1",)

    def test_exception_beats_activity(self, user, base_config, make_activity, make_enrollment):
        activity = make_activity(meal_plan=(_substitution(),))
        config = base_config.model_copy(update={"activities": (activity,)})
        data = UserMealData(exceptions=(_exception(),), enrollments=(make_enrollment(),))

        cell = build_cell(MONDAY, COMIDAS, config, user, data)

        assert cell.choice_source is ChoiceSource.EXCEPTION
        assert cell.activity_substitution_ids == ("sub-1",)

    def test_unconfirmed_enrollment_ignored(self, user, base_config, make_activity, make_enrollment):
        activity = make_activity(meal_plan=(_substitution(),))
        config = base_config.model_copy(update={"activities": (activity,)})
        data = UserMealData(
            enrollments=(make_enrollment(status=EnrollmentStatus.INVITADO_PENDIENTE),)
        )

        cell = build_cell(MONDAY, COMIDAS, config, user, data)

        assert cell.enrolled_activity_ids == ()
        assert cell.choice_source is ChoiceSource.NONE

    def test_standalone_substitution_applies(self, user, base_config, make_activity, make_enrollment):
        standalone = _substitution(id="sub-ext").model_copy(update={"activity_id": "act-1"})
        config = base_config.model_copy(
            update={"activities": (make_activity(),), "substitutions": (standalone,)}
        )
        data = UserMealData(enrollments=(make_enrollment(),))

        assert build_cell(MONDAY, COMIDAS, config, user, data).current_choice_id == "sub-ext"

    def test_absence_flag_independent_of_choice(self, user, base_config, make_absence):
        data = UserMealData(
            weekly_selection=_selection(**{"tc-almuerzo-lunes": "alt-A"}),
            exceptions=(_exception(),),
            absences=(make_absence(),),
        )

        cell = build_cell(MONDAY, COMIDAS, base_config, user, data)

        assert cell.has_absence is True
        assert cell.absence_id == "aus-1"
        assert cell.choice_source is ChoiceSource.EXCEPTION
        assert cell.current_choice_id == "alt-B"


class TestCoverage:
    """Test activity and absence boundaries."""

    def test_activity_boundaries(self, user, three_meals, make_activity, make_enrollment):
        activity = make_activity(
            start_date=MONDAY,
            end_date=WEDNESDAY,
            last_slot_before_id="tc-comida",
            first_slot_after_id="tc-desayuno",
        )
        config = three_meals.model_copy(update={"activities": (activity,)})
        data = UserMealData(enrollments=(make_enrollment(),))

        grid = build_grid(user, config, WEEK, data)

        def enrolled(day, group):
            return grid.cell(day, group).has_enrolled_activity

        assert not enrolled(MONDAY, "Desayunos")
        assert enrolled(MONDAY, "Comidas")
        assert enrolled(MONDAY, "Cenas")
        assert all(enrolled(TUESDAY, g) for g in ("Desayunos", "Comidas", "Cenas"))
        assert enrolled(WEDNESDAY, "Desayunos")
        assert not enrolled(WEDNESDAY, "Comidas")
        assert not enrolled(date(2025, 1, 9), "Desayunos")

    def test_activity_without_boundaries_covers_edge_days(self, user, three_meals, make_activity, make_enrollment):
        activity = make_activity(start_date=MONDAY, end_date=WEDNESDAY)
        config = three_meals.model_copy(update={"activities": (activity,)})
        data = UserMealData(enrollments=(make_enrollment(),))

        grid = build_grid(user, config, WEEK, data)

        for day in (MONDAY, WEDNESDAY):
            assert all(grid.cell(day, g).has_enrolled_activity for g in ("Desayunos", "Comidas", "Cenas"))

    def test_single_day_applies_both_boundaries(self, three_meals):
        covered = [
            covers_group(
                MONDAY,
                MealGroup(name=s.group_name, order=s.group_order),
                MONDAY,
                MONDAY,
                "tc-comida",
                "tc-comida",
                three_meals,
                "absence",
                "aus-1",
            )
            for s in three_meals.meal_slots
        ]
        assert covered == [False, True, False]

    def test_missing_boundary_covers_whole_day(self, three_meals):
        for slot in three_meals.meal_slots:
            group = MealGroup(name=slot.group_name, order=slot.group_order)
            assert covers_group(MONDAY, group, MONDAY, TUESDAY, None, None, three_meals, "absence", "aus-1")

    def test_unknown_boundary_raises_lookup_gap(self, three_meals):
        with pytest.raises(LookupGapError):
            covers_group(MONDAY, COMIDAS, MONDAY, TUESDAY, "tc-missing", None, three_meals, "absence", "aus-1")

    def test_unknown_boundary_degrades_only_that_cell(self, user, three_meals, make_activity, make_enrollment):
        broken = make_activity(start_date=MONDAY, end_date=WEDNESDAY, last_slot_before_id="tc-missing")
        config = three_meals.model_copy(update={"activities": (broken,)})
        data = UserMealData(enrollments=(make_enrollment(),))

        grid = build_grid(user, config, WEEK, data)

        assert not grid.cell(MONDAY, "Comidas").has_enrolled_activity
        assert grid.cell(TUESDAY, "Comidas").has_enrolled_activity

    def test_enrollment_for_missing_activity_ignored(self, user, base_config, make_enrollment):
        data = UserMealData(enrollments=(make_enrollment(activity_id="act-gone"),))

        cell = build_cell(MONDAY, COMIDAS, base_config, user, data)

        assert cell.enrolled_activity_ids == ()
        assert cell.configured is True

    def test_absence_boundaries(self, user, three_meals, make_absence):
        absence = make_absence(
            start_date=MONDAY, end_date=TUESDAY, last_slot_id="tc-cena", first_slot_id="tc-comida"
        )
        grid = build_grid(user, three_meals, WEEK, UserMealData(absences=(absence,)))

        assert [grid.cell(MONDAY, g).has_absence for g in ("Desayunos", "Comidas", "Cenas")] == [
            False,
            False,
            True,
        ]
        assert [grid.cell(TUESDAY, g).has_absence for g in ("Desayunos", "Comidas", "Cenas")] == [
            True,
            True,
            False,
        ]

    def test_open_activity_offered_to_join(self, user, base_config, make_activity):
        open_activity = make_activity(status=ActivityStatus.ABIERTA_INSCRIPCION)
        config = base_config.model_copy(update={"activities": (open_activity,)})

        cell = build_cell(MONDAY, COMIDAS, config, user, UserMealData())

        assert cell.available_activity_ids == ("act-1",)
        assert cell.has_activity_to_join

    def test_enrolled_activity_not_offered(self, user, base_config, make_activity, make_enrollment):
        open_activity = make_activity(status=ActivityStatus.ABIERTA_INSCRIPCION)
        config = base_config.model_copy(update={"activities": (open_activity,)})
        data = UserMealData(enrollments=(make_enrollment(),))

        cell = build_cell(MONDAY, COMIDAS, config, user, data)

        assert cell.available_activity_ids == ()
        assert cell.enrolled_activity_ids == ("act-1",)

    def test_closed_activity_not_offered(self, user, base_config, make_activity):
        closed = make_activity(status=ActivityStatus.CERRADA_INSCRIPCION)
        config = base_config.model_copy(update={"activities": (closed,)})

        assert build_cell(MONDAY, COMIDAS, config, user, UserMealData()).available_activity_ids == ()
