import pytest

from rabbitsim.cpu_fvs import (
    get_cpu_boot_fv_level,
    get_cpu_fv_percents,
    get_cpu_fvs,
    get_cpu_nb_fv_levels,
)


def test_level_count_excludes_idle():
    fvs = get_cpu_fvs("arm", "any")
    assert get_cpu_nb_fv_levels("arm", "any") == len(fvs) - 1


def test_boot_level_is_fastest_running_level():
    fvs = get_cpu_fvs("arm", "any")
    boot = get_cpu_boot_fv_level("arm", "any")
    assert boot == get_cpu_nb_fv_levels("arm", "any") - 1
    assert fvs[boot] == max(fvs)


def test_percents_have_one_entry_per_frequency():
    assert len(get_cpu_fv_percents("arm", "x")) == len(get_cpu_fvs("arm", "x"))


def test_percents_are_relative_to_fastest():
    percents = get_cpu_fv_percents("arm", "x")
    fvs = get_cpu_fvs("arm", "x")
    top = max(fvs)
    for fv, percent in zip(fvs, percents):
        assert percent == pytest.approx(fv * 100 / top)


def test_fastest_is_full_speed_and_idle_is_zero():
    percents = get_cpu_fv_percents("arm", "x")
    boot = get_cpu_boot_fv_level("arm", "x")
    assert percents[boot] == 100.0
    assert percents[-1] == 0.0


@pytest.mark.parametrize("family,model", [("arm", "a"), ("other", "b")])
def test_every_family_gets_the_same_tables(family, model):
    assert get_cpu_fvs(family, model) == get_cpu_fvs("arm", "arm11mpcore")
    assert get_cpu_fv_percents(family, model) == get_cpu_fv_percents("arm", "arm11mpcore")