"""Weighted substring index backing :class:`mercer.kernels.StringKernel`.

The kernel between two symbol sequences ``a`` and ``b`` is

    k(a, b) = sum_s w_|s| * n_s(a) * n_s(b)

over all non-empty substrings ``s``, where ``n_s`` counts occurrences and ``w_l`` is the weight of
substrings of length ``l`` (Vishwanathan and Smola, 2004). Weights are supplied through a cumulative
weight function ``W(n) = w_1 + ... + w_n`` that must be computable in constant time.

The added words are kept in a generalized suffix automaton, which has at most ``2n`` states for ``n``
added symbols. Every state stands for the substrings whose lengths lie in ``(len(link), len]`` and
which all occur at the same positions, so their weights are summed with a single call to ``W``. A
query is matched symbol by symbol, giving ``O(n + m)`` per kernel evaluation.

An optional sentinel symbol ends a word: substrings never extend across it and it is never counted.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Hashable, Sequence
from typing import Final, Optional

type Symbols = Sequence[Hashable]


class WeightFunction(ABC):
    @abstractmethod
    def __call__(self, length: int) -> float:
        """Cumulative weight of all substring lengths in ``1..length``."""
        raise NotImplementedError

    def interval(self, start: int, end: int) -> float:
        return self(end) - self(start)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class SumWeightFunction(WeightFunction):
    def __call__(self, length: int) -> float:
        return float(length)


class ExpSumWeightFunction(WeightFunction):
    decay: Final[float]

    def __init__(self, decay: float):
        if decay <= 0:
            raise ValueError(f"Decay must be positive. Got {decay}.")
        if decay == 1:
            raise ValueError("Decay of 1 has no closed form geometric sum. Use SumWeightFunction instead.")

        self.decay = decay

    def __call__(self, length: int) -> float:
        return self.decay * (1 - self.decay ** length) / (1 - self.decay)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(decay={self.decay})"


class _State:
    __slots__ = ("transitions", "link", "length", "weight", "count", "total")

    def __init__(self, length: int, link: Optional[_State] = None,
                 transitions: Optional[dict[Hashable, _State]] = None):
        self.transitions: dict[Hashable, _State] = {} if transitions is None else dict(transitions)
        self.link = link
        self.length = length
        # weight of the added prefixes that end in this state
        self.weight = 0.0
        # weighted occurrences of the substrings of this state
        self.count = 0.0
        # contribution of a full match of this state, suffix link ancestors included
        self.total = 0.0


class SubstringIndex:
    """Weighted occurrence counts of all substrings of the added words."""

    weight_function: Final[WeightFunction]
    sentinel: Final[Optional[Hashable]]

    def __init__(self, weight_function: WeightFunction, sentinel: Optional[Hashable] = None):
        if weight_function is None:
            raise ValueError("`weight_function` must be supplied. Got None.")

        self.weight_function = weight_function
        self.sentinel = sentinel
        self.clear()

    def __len__(self) -> int:
        return len(self._states)

    def _is_sentinel(self, symbol: Hashable) -> bool:
        return self.sentinel is not None and symbol == self.sentinel

    def _clone(self, state: _State, length: int) -> _State:
        clone = _State(length, state.link, state.transitions)
        state.link = clone
        self._states.append(clone)
        return clone

    @staticmethod
    def _redirect(state: Optional[_State], symbol: Hashable, target: _State, clone: _State):
        while state is not None and state.transitions.get(symbol) is target:
            state.transitions[symbol] = clone
            state = state.link

    def _extend(self, last: _State, symbol: Hashable) -> _State:
        target = last.transitions.get(symbol)

        if target is not None:
            # the prefix already occurs as a substring of an earlier word
            if target.length == last.length + 1:
                return target

            clone = self._clone(target, last.length + 1)
            self._redirect(last, symbol, target, clone)
            return clone

        state = _State(last.length + 1)
        self._states.append(state)

        node = last
        while node is not None and symbol not in node.transitions:
            node.transitions[symbol] = state
            node = node.link

        if node is None:
            state.link = self.root
            return state

        target = node.transitions[symbol]
        if target.length == node.length + 1:
            state.link = target
        else:
            clone = self._clone(target, node.length + 1)
            self._redirect(node, symbol, target, clone)
            state.link = clone

        return state

    def add_word(self, symbols: Symbols, weight: float) -> None:
        last = self.root

        for symbol in symbols:
            if self._is_sentinel(symbol):
                last = self.root
                continue

            last = self._extend(last, symbol)
            last.weight += weight

        self._stale = True

    def _refresh(self):
        if not self._stale:
            return

        states = sorted(self._states, key=lambda state: state.length)

        for state in states:
            state.count = state.weight
        for state in reversed(states):
            if state.link is not None:
                state.link.count += state.count

        for state in states:
            if state.link is None:
                state.total = 0.0
            else:
                state.total = state.link.total + state.count * self.weight_function.interval(
                    state.link.length, state.length
                )

        self._stale = False

    def compute_kernel(self, symbols: Symbols) -> float:
        self._refresh()

        value = 0.0
        state, length = self.root, 0

        for symbol in symbols:
            if self._is_sentinel(symbol):
                state, length = self.root, 0
                continue

            while state is not self.root and symbol not in state.transitions:
                state = state.link
                length = state.length

            state = state.transitions.get(symbol)
            if state is None:
                state, length = self.root, 0
                continue

            length += 1
            # the matched suffixes of length (len(link), length] share the occurrences of `state`
            value += state.link.total + state.count * self.weight_function.interval(state.link.length, length)

        return value

    def clear(self) -> None:
        self.root = _State(0)
        self._states = [self.root]
        self._stale = False

    def has_any_branch(self) -> bool:
        return bool(self.root.transitions)
