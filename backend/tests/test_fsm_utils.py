import pytest
from dentpal.utils.fsm import InvalidTransition, TransitionValidator
from dentpal.services.withdrawals import WITHDRAWAL_FSM

FSM = TransitionValidator({
    'draft': {'published'},
    'published': {'draft'},
})


def test_allowed_and_denied():
    assert FSM.can_transition('draft', 'published')
    assert not FSM.can_transition('draft', 'draft')
    assert not FSM.can_transition(None, 'draft')
    assert FSM.assert_can_transition('published', 'draft') is True


def test_invalid_transition_is_a_400_with_context():
    with pytest.raises(InvalidTransition) as exc:
        FSM.assert_can_transition('draft', 'archived')
    assert exc.value.code == 400
    assert exc.value.current == 'draft'
    assert exc.value.target == 'archived'
    assert 'draft -> archived' in exc.value.description


def test_withdrawal_graph_sources():
    assert list(WITHDRAWAL_FSM.sources_for('failed')) == ['approved', 'processing']
    assert list(WITHDRAWAL_FSM.sources_for('approved')) == ['pending']
    for terminal in ('completed', 'rejected', 'failed'):
        assert not any(WITHDRAWAL_FSM.can_transition(terminal, t) for t in ('pending', 'approved', 'processing'))
