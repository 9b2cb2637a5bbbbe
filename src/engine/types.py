"""
Identifier and transition types shared by every environment and solver.

Identifiers are ``NewType`` wrappers over plain ints/floats: free at runtime,
but a type checker keeps a PositionId from being passed where an ActionId is
expected.

    PositionId   — dense index of a game position in [0, max_state_id())
    ActionId     — index of an action under the environment's fixed encoding
    AgentId      — index of the participant owning an action, in [0, num_agents())
    Reward       — signed scalar accrued by one agent for one action
    Probability  — scalar in [0, 1]

A ``TransitionTable`` maps every PositionId to the tuple of its outgoing
``Transition`` edges.  An empty tuple marks a terminal (absorbing) position.
"""

from __future__ import annotations

from typing import NamedTuple, NewType

PositionId = NewType("PositionId", int)
ActionId = NewType("ActionId", int)
AgentId = NewType("AgentId", int)
Reward = NewType("Reward", float)
Probability = NewType("Probability", float)


class Transition(NamedTuple):
    """One outgoing edge of a position in the Markov model.

    The source position is implied by the key of the containing table.

    Attributes:
        action_id:    Action taken from the source position.
        new_state_id: Position reached after the action.
        reward:       Reward accrued by the owning agent (``rewards[agent_id]``).
        prob:         Probability of the edge under the uniform baseline policy:
                      ``1 / (number of legal actions at the source position)``.
        agent_id:     Agent that owns the action.
        rewards:      Reward of every agent ``0 .. num_agents-1`` for the same
                      resulting position.

    Example:
        >>> Transition(ActionId(1), PositionId(6561), Reward(0.0), Probability(1 / 9),
        ...            AgentId(0), (Reward(0.0), Reward(0.0))).agent_id
        0
    """

    action_id: ActionId
    new_state_id: PositionId
    reward: Reward
    prob: Probability
    agent_id: AgentId
    rewards: tuple[Reward, ...]


TransitionTable = dict[PositionId, tuple[Transition, ...]]
"""Complete Markov model: every PositionId → its outgoing transitions."""
