"""Tests for sum, scaled, offset and mapping kernels."""

from concurrent.futures import ThreadPoolExecutor

import jax.numpy as jnp
import pytest

from mercer import (
    GaussianKernel,
    LinearKernel,
    MappingKernel,
    OffsetKernel,
    RbfKernel,
    ScaledKernel,
    StringKernel,
    SumKernel,
)


def test_sum_compute_sum_is_sum_of_parts(dense_items, weights):
    k1, k2 = LinearKernel(3), RbfKernel(1.0, 3)
    summed = SumKernel([k1.fork_new(), k2.fork_new()])

    for weight, item in zip(weights, dense_items):
        for kernel in (k1, k2, summed):
            kernel.add_component(weight, item)

    for query in dense_items:
        assert summed.compute_sum(query) == pytest.approx(k1.compute_sum(query) + k2.compute_sum(query))


def test_sum_broadcasts_components_to_every_summand(dense_items):
    summed = LinearKernel(3) + RbfKernel(1.0, 3)
    summed.add_component(1.0, dense_items[0])

    assert all(kernel.has_components for kernel in summed.summands)

    summed.clear_components()
    assert not any(kernel.has_components for kernel in summed.summands)


def test_sum_has_components_if_any_summand_has():
    linear, rbf = LinearKernel(1), RbfKernel(1.0, 1)
    summed = SumKernel([linear, rbf])

    rbf.add_component(1.0, jnp.array([1.0]))
    assert summed.has_components


def test_empty_sum_is_zero():
    summed = SumKernel()
    summed.add_component(1.0, jnp.array([1.0]))

    assert summed.compute(jnp.array([1.0]), jnp.array([2.0])) == 0
    assert summed.compute_sum(jnp.array([1.0])) == 0
    assert summed.has_components

    summed.clear_components()
    assert not summed.has_components


def test_sum_fork_forks_every_summand():
    summands = [LinearKernel(2), RbfKernel(1.0, 2)]
    fork = SumKernel(summands).fork_new()

    assert len(fork.summands) == 2
    assert all(a is not b for a, b in zip(fork.summands, summands))
    assert [type(kernel) for kernel in fork.summands] == [LinearKernel, RbfKernel]


@pytest.mark.parametrize("factor", [2.5, 1.0, 0.0, -3.0])
def test_scaled_compute(factor, dense_items):
    kernel = RbfKernel(1.0, 3)
    scaled = ScaledKernel(factor, kernel)

    for a in dense_items:
        assert scaled.compute(a, dense_items[0]) == pytest.approx(factor * kernel.compute(a, dense_items[0]))


@pytest.mark.parametrize("factor", [2.5, 0.0, -3.0])
def test_scaled_applies_factor_when_reading(factor, dense_items, weights):
    inner = LinearKernel(3)
    scaled = ScaledKernel(factor, inner)

    for weight, item in zip(weights, dense_items):
        scaled.add_component(weight, item)

    query = dense_items[4]
    assert inner.has_components
    assert scaled.compute_sum(query) == pytest.approx(factor * inner.compute_sum(query))


def test_offset_scenario():
    zero = ScaledKernel(0.0, LinearKernel(1))
    kernel = OffsetKernel(zero, 5.0)

    kernel.add_component(3.0, jnp.array([1.0]))

    assert kernel.compute_sum(jnp.array([7.0])) == pytest.approx(15.0)
    assert kernel.compute_sum(jnp.array([-2.0])) == pytest.approx(15.0)


def test_offset_over_empty_sum_has_components():
    kernel = OffsetKernel(SumKernel([]), 5.0)
    assert not kernel.has_components

    kernel.add_component(3.0, jnp.array([1.0]))

    assert kernel.has_components
    assert kernel.compute_sum(jnp.array([7.0])) == pytest.approx(15.0)

    kernel.clear_components()
    assert not kernel.has_components


def test_composites_own_their_sub_kernels(dense_items, weights):
    linear = LinearKernel(3)
    first = ScaledKernel(2.0, linear)
    second = OffsetKernel(linear, 1.0)

    assert first.kernel is linear
    assert second.kernel is not linear

    for weight, item in zip(weights, dense_items):
        first.add_component(weight, item)

    assert not second.has_components
    assert second.compute_sum(dense_items[4]) == 0


def test_offset_compute_sum_adds_weighted_offset(dense_items, weights):
    base = RbfKernel(1.0, 3)
    kernel = OffsetKernel(base, 0.75)

    for weight, item in zip(weights, dense_items):
        kernel.add_component(weight, item)

    for query in dense_items:
        assert kernel.compute_sum(query) == pytest.approx(base.compute_sum(query) + 0.75 * sum(weights))


def test_offset_clear_resets_total_offset():
    kernel = OffsetKernel(LinearKernel(1), 2.0)
    kernel.add_component(4.0, jnp.array([1.0]))
    kernel.clear_components()

    assert kernel.components_total_offset == 0
    assert kernel.compute_sum(jnp.array([1.0])) == 0

    kernel.add_component(1.0, jnp.array([0.0]))
    assert kernel.compute_sum(jnp.array([1.0])) == pytest.approx(2.0)


def test_offset_fork_starts_without_total_offset():
    kernel = OffsetKernel(LinearKernel(1), 2.0)
    kernel.add_component(4.0, jnp.array([1.0]))

    fork = kernel.fork_new()

    assert fork.offset == 2.0
    assert fork.components_total_offset == 0


def test_mapping_forwards_mapped_arguments():
    records = [{"name": "abc", "point": jnp.array([1.0, 2.0])}, {"name": "abd", "point": jnp.array([0.0, 1.0])}]
    points = MappingKernel(lambda r: r["point"], LinearKernel(2))
    names = MappingKernel(lambda r: r["name"], StringKernel())

    assert points.compute(records[0], records[1]) == pytest.approx(2.0)
    assert names.compute(records[0], records[1]) == pytest.approx(3.0)

    record_kernel = points + 0.5 * names
    record_kernel.add_component(2.0, records[0])

    assert points.kernel.has_components
    assert names.kernel.has_components
    assert record_kernel.compute_sum(records[1]) == pytest.approx(2.0 * 2.0 + 0.5 * 2.0 * 3.0)


def test_mapping_fork_keeps_mapping():
    def mapping(record):
        return record[0]

    fork = MappingKernel(mapping, LinearKernel(1)).fork_new()
    assert fork.mapping is mapping


def test_forks_accumulate_in_parallel(dense_items, weights):
    """Every thread owns a fork; the values are combined after accumulation."""
    kernel = GaussianKernel(1.0, LinearKernel(3)) + 2 * LinearKernel(3)
    for weight, item in zip(weights, dense_items):
        kernel.add_component(weight, item)

    def accumulate(component):
        fork = kernel.fork_new()
        fork.add_component(*component)
        return fork.compute_sum(dense_items[4])

    with ThreadPoolExecutor(max_workers=4) as executor:
        partial_sums = list(executor.map(accumulate, zip(weights, dense_items)))

    assert sum(partial_sums) == pytest.approx(kernel.compute_sum(dense_items[4]))


@pytest.mark.parametrize("build", [
    lambda: ScaledKernel(1.0, None),
    lambda: OffsetKernel(None, 1.0),
    lambda: MappingKernel(None, LinearKernel(1)),
    lambda: MappingKernel(lambda x: x, None),
    lambda: GaussianKernel(1.0, None),
    lambda: GaussianKernel(0.0, LinearKernel(1)),
    lambda: SumKernel(None),
    lambda: SumKernel([LinearKernel(1), None]),
])
def test_invalid_configuration_fails_construction(build):
    with pytest.raises(ValueError):
        build()


def test_repr_shows_configuration():
    kernel = 2 * GaussianKernel(0.5, LinearKernel(3)) + 1.0

    assert repr(kernel) == (
        "OffsetKernel(kernel=ScaledKernel(factor=2.0, "
        "kernel=GaussianKernel(sigma2=0.5, inner_kernel=LinearKernel(dimensionality=3))), offset=1.0)"
    )
