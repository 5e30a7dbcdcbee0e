"""
Streamlit web interface for the real-option valuation toolkit.

Interactive UI with tabs for:
- Lattice valuation and Greeks
- Exercise boundary
- Volatility sensitivity
"""

from dataclasses import replace

import streamlit as st
import numpy as np
import pandas as pd
import plotly.graph_objects as go
from real_options.core.lattice import price_lattice
from real_options.core.valuation import value_real_option
from real_options.utils.errors import RealOptionsError
from real_options.utils.logging_config import setup_logging
from real_options.utils.types import OptionArchetype, ValuationRequest

setup_logging("WARNING")

st.set_page_config(page_title="Real Option Valuation", layout="wide")

st.title("Real Option Valuation")
st.markdown("CRR binomial lattice pricing of managerial flexibility")

# Sidebar parameters
st.sidebar.header("Project Parameters")
option_type = st.sidebar.selectbox("Option Type", [m.value for m in OptionArchetype])
S = st.sidebar.number_input("Project Value (S)", value=100.0, min_value=0.01)
K = st.sidebar.number_input("Exercise Price (K)", value=100.0, min_value=0.01)
T = st.sidebar.slider("Time to Expiry (years)", 0.1, 10.0, 1.0)
r = st.sidebar.slider("Risk-Free Rate (%)", 0.0, 20.0, 5.0) / 100
q = st.sidebar.slider("Dividend Yield (%)", 0.0, 10.0, 0.0) / 100
sigma = st.sidebar.slider("Volatility (%)", 0.0, 150.0, 30.0) / 100
steps = st.sidebar.slider("Lattice Steps", 10, 200, 50)

extra = {}
if option_type == OptionArchetype.EXPAND.value:
    extra["expansion_factor"] = st.sidebar.number_input("Expansion Factor", value=1.5, min_value=1.01)
elif option_type == OptionArchetype.CONTRACT.value:
    extra["contraction_factor"] = st.sidebar.slider("Contraction Factor", 0.05, 0.95, 0.5)
elif option_type == OptionArchetype.SWITCH.value:
    extra["switch_cost"] = st.sidebar.number_input("Switch Cost", value=5.0, min_value=0.0)
    extra["switch_value_ratio"] = st.sidebar.number_input("Switch Value Ratio", value=1.2, min_value=0.0)

# Streamlit floats go through repr, so 0.3 stays 0.3 in the lattice
request = ValuationRequest(
    option_type=option_type,
    underlying_value=S,
    exercise_price=K,
    volatility=sigma,
    risk_free_rate=r,
    time_to_expiry=T,
    steps=steps,
    dividend_yield=q,
    **extra,
)

try:
    output = value_real_option(request)
except RealOptionsError as e:
    st.error(f"Error: {e}")
    st.stop()

result = output.result

tab1, tab2, tab3 = st.tabs(["Valuation & Greeks", "Exercise Boundary", "Volatility Sensitivity"])

with tab1:
    st.header("Project Valuation")

    col1, col2 = st.columns(2)

    with col1:
        st.metric(label="Option Value", value=f"{result.option_value:,.4f}")
        st.metric(label="Static NPV", value=f"{result.static_npv:,.4f}")
        st.metric(label="Expanded NPV", value=f"{result.expanded_npv:,.4f}")
        st.metric(label="Option Premium", value=f"{result.option_premium:,.4f}")
        st.metric(label="Breakeven Volatility", value=f"{result.breakeven_volatility:.2%}")

    with col2:
        st.subheader("Greeks")
        greeks_df = pd.DataFrame({
            "Greek": ["Delta", "Gamma", "Theta", "Vega"],
            "Value": [
                f"{result.delta:.6f}",
                f"{result.gamma:.6f}",
                f"{result.theta:.6f}",
                f"{result.vega:.6f}",
            ],
            "Description": [
                "Value change per unit of project value",
                "Delta change per unit of project value",
                "Value change per year of elapsed time",
                "Value change per unit of volatility",
            ],
        })
        st.table(greeks_df)

    for warning in output.warnings:
        st.warning(warning)
    st.caption(f"{output.methodology} | {output.metadata.computation_time_us} µs")

with tab2:
    st.header("Early Exercise Boundary")

    if result.exercise_boundary:
        dt = T / steps
        boundary_df = pd.DataFrame({
            "Time (years)": [p.time_step * dt for p in result.exercise_boundary],
            "Threshold Value": [float(p.threshold_value) for p in result.exercise_boundary],
        })
        fig_boundary = go.Figure()
        fig_boundary.add_trace(go.Scatter(
            x=boundary_df["Time (years)"],
            y=boundary_df["Threshold Value"],
            mode="lines+markers",
            name="Exercise threshold",
        ))
        fig_boundary.add_hline(y=K, line_dash="dash", annotation_text="Exercise price")
        fig_boundary.update_layout(
            title="Project Value at Which Exercise Becomes Optimal",
            xaxis_title="Time (years)",
            yaxis_title="Project Value",
        )
        st.plotly_chart(fig_boundary, use_container_width=True)
    else:
        st.info("Early exercise is never strictly optimal on this lattice.")

with tab3:
    st.header("Option Value vs Volatility")

    vol_grid = np.linspace(0.05, 1.0, 20)
    values = [float(price_lattice(replace(request, volatility=v, steps=min(steps, 50)))) for v in vol_grid]
    sweep_df = pd.DataFrame({"Volatility": vol_grid, "Option Value": values})

    fig_vol = go.Figure()
    fig_vol.add_trace(go.Scatter(x=sweep_df["Volatility"], y=sweep_df["Option Value"], name="Option Value"))
    fig_vol.add_hline(y=max(float(result.static_npv), 0.0), line_dash="dot", line=dict(color="orange"),
                      annotation_text="max(Static NPV, 0)")
    fig_vol.update_layout(title="Option Value vs Volatility", xaxis_title="Volatility", yaxis_title="Option Value")
    st.plotly_chart(fig_vol, use_container_width=True)

    st.dataframe(sweep_df.style.format({"Volatility": "{:.2%}", "Option Value": "{:.4f}"}))
