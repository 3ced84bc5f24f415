"""Checks that the installed Streamlit offers the widget arguments app.py uses."""

import inspect

import pytest
import streamlit as st


@pytest.mark.parametrize("widget", ["button", "dataframe"])
def test_widgets_accept_width_argument(widget):
    """app.py sizes buttons and tables with width="stretch"."""
    params = inspect.signature(getattr(st, widget)).parameters
    assert "width" in params
