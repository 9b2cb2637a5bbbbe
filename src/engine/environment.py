"""Capability protocols for turn-based, fully observable games.

Any game (tic-tac-toe, connect-four, …) implements these protocols so that the
transition-table builder, the policies and the DP trainer stay game-agnostic.
A new game is a new set of implementations, not a subclass.
"""

from __future__ import annotations

from typing import Protocol, Sequence, TypeVar, runtime_checkable

from src.engine.types import ActionId, AgentId, PositionId, Reward, TransitionTable

StateT = TypeVar("StateT", bound="EnumerableState")
ActionT = TypeVar("ActionT", bound="Action")


@runtime_checkable
class State(Protocol):
    """Read-only snapshot of a game position."""

    def is_terminal(self) -> bool:
        ...

    def id(self) -> PositionId:
        """Dense identifier of this position."""
        ...


@runtime_checkable
class Action(Protocol):
    def id(self) -> ActionId:
        ...


@runtime_checkable
class Environment(Protocol):
    """Protocol that every playable game must implement."""

    # ------------------------------------------------------------------
    #  Current position
    # ------------------------------------------------------------------

    def state(self) -> State:
        ...

    def actions(self) -> Sequence[Action]:
        """Legal actions from the current position; empty iff terminal."""
        ...

    def apply_action(self, action: Action) -> Reward:
        """Advance the current position and return the acting agent's reward.

        Raises ``ValueError`` when the position is terminal or the action is
        not legal there.  Those are caller bugs, not recoverable conditions.
        """
        ...

    # ------------------------------------------------------------------
    #  Agents
    # ------------------------------------------------------------------

    def agent_id_for_action(self, action: Action) -> AgentId:
        """Owner of *action*; a pure function of the action's payload."""
        ...

    def num_agents(self) -> int:
        ...


@runtime_checkable
class SolvableEnvironment(Environment, Protocol):
    """An environment whose finite position space can be materialised."""

    def max_state_id(self) -> PositionId:
        """Number of position ids; every id lies in ``[0, max_state_id())``."""
        ...

    def state_transitions(self) -> TransitionTable:
        """Markov model over ``[0, max_state_id())``.

        An id without a key has no outgoing transitions and is terminal.
        """
        ...


# ─── Builder input ────────────────────────────────────────────────────────────


class EnumerableState(State, Protocol[ActionT]):
    """A position that can list and apply its own actions without mutation."""

    def actions(self) -> Sequence[ActionT]:
        ...

    def apply_action(self, action: ActionT) -> EnumerableState:
        """Return the **new** position reached by *action*."""
        ...


class EnumerableEnvironment(Protocol[StateT, ActionT]):
    """What the transition-table builder needs from an environment.

    The codec methods (``max_state_id`` / ``create_state_with_id``) let the
    builder reconstruct every position independently from its id, so no shared
    mutable position is ever touched during enumeration.
    """

    def max_state_id(self) -> PositionId:
        ...

    def create_state_with_id(self, state_id: int) -> StateT | None:
        ...

    def agent_id_for_action(self, action: ActionT) -> AgentId:
        ...

    def reward_for_agent(self, state: StateT, agent_id: AgentId) -> Reward:
        ...

    def num_agents(self) -> int:
        ...
