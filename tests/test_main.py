"""
Tests for the Streamlit page helpers and widget wiring.
"""

from streamlit.testing.v1 import AppTest

from locks import LockState
from main import lock_help


class TestLockHelp:
    """Padlock tooltips follow the field's own flag"""

    def test_free_field(self):
        assert lock_help("broker_cpa", LockState()) == "Lock Broker CPA"

    def test_individually_locked_field(self):
        assert lock_help("broker_cpa", LockState(broker_cpa=True)) == "Unlock Broker CPA"

    def test_field_locked_by_group(self):
        text = lock_help("affiliate_crg", LockState(affiliate_terms=True))
        assert text.startswith("Locked by Affiliate Terms")
        assert "Unlock" not in text


class TestMarginWidgets:
    """Margin number input and slider stay in step"""

    def setup_method(self):
        self.at = AppTest.from_file("../main.py")
        self.at.run()

    def test_typed_margin_moves_slider(self):
        self.at.number_input(key="input_margin").set_value(35.0).run()
        assert self.at.slider(key="margin_slider").value == 35.0
        assert self.at.session_state.last_changed == "margin"

    def test_slider_moves_margin_input(self):
        self.at.slider(key="margin_slider").set_value(42.5).run()
        assert self.at.number_input(key="input_margin").value == 42.5
