import json

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from budgetcore.config import get_config
from budgetcore.domain import BUDGET_COLORS, EXPENSE, INCOME, PAYMENT_METHODS
from budgetcore.errors import LedgerError
from budgetcore.events import SNAPSHOT_CHANGED
from budgetcore.ledger import invariant_violations
from budgetcore.logging_config import setup_logging
from budgetcore.queries import (
    ALL_CATEGORIES,
    budget_choices,
    budget_label,
    distinct_categories,
    filter_by_category,
    recent_months,
    recent_transactions,
)
from budgetcore.services import BudgetTracker, ReportService
from budgetcore.storage import load_snapshot, save_snapshot, snapshot_to_dict

st.set_page_config(page_title="BudgetTracker", layout="wide")

config = get_config()
setup_logging(config)


def fmt(amount) -> str:
    return f"{config.CURRENCY} {amount:,.0f}"


def make_tracker() -> BudgetTracker:
    tracker = BudgetTracker(
        load_snapshot(config.DATA_FILE, config.SEED_FILE),
        history_size=config.HISTORY_SIZE,
    )
    tracker.bus.subscribe(
        SNAPSHOT_CHANGED,
        lambda event: save_snapshot(event.payload["snapshot"], config.DATA_FILE),
    )
    return tracker


if "tracker" not in st.session_state:
    st.session_state.tracker = make_tracker()

tracker: BudgetTracker = st.session_state.tracker
reports = ReportService()


def run(action, success: str) -> None:
    try:
        action()
    except LedgerError as e:
        st.error(f"❌ {e}")
        return
    st.success(success)
    st.rerun()


def budget_card(budget, util) -> None:
    st.markdown(
        f"<span style='color:{budget.color}'>●</span> **{budget.name}**",
        unsafe_allow_html=True,
    )
    st.caption(f"Spent {fmt(budget.spent)} / Limit {fmt(budget.monthly_limit)}")
    st.progress(min(util.percentage, 100) / 100)
    label = f"{util.percentage:.1f}% used"
    if util.is_over_budget:
        st.error(f"{label} · ⚠️ Over budget!")
    else:
        st.caption(label)


snapshot = tracker.snapshot
dashboard = reports.dashboard(snapshot)

menu = st.sidebar.radio("Menu", ["🏠 Dashboard", "🧾 Transactions", "📊 Analytics", "⚙️ Settings"])

if menu == "🏠 Dashboard":
    st.title("🏠 Dashboard")
    totals = dashboard["totals"]
    k1, k2, k3 = st.columns(3)
    k1.metric("Total Income", fmt(totals.income))
    k2.metric("Total Expenses", fmt(totals.expenses))
    k3.metric("Net Balance", fmt(totals.net))

    st.header("💰 Budgets")
    performance = dashboard["budgets"]
    if performance:
        cols = st.columns(3)
        for idx, row in enumerate(performance):
            with cols[idx % 3]:
                budget_card(row.budget, row.utilization)
                if st.button("🗑 Delete", key=f"del_budget_{row.budget.id}"):
                    run(lambda b=row.budget: tracker.delete_budget(b.id), f"Budget {row.budget.name} deleted")
    else:
        st.info("No budgets defined")

    with st.expander("➕ Create Budget"):
        with st.form("create_budget", clear_on_submit=True):
            name = st.text_input("Budget Name", placeholder="e.g., Groceries")
            limit = st.number_input(f"Monthly Limit ({config.CURRENCY})", min_value=0.0, step=1000.0)
            color = st.selectbox("Color", BUDGET_COLORS)
            if st.form_submit_button("Save Budget"):
                run(lambda: tracker.create_budget(name, limit, color), "Budget created")

    if snapshot.budgets:
        with st.expander("✏️ Edit Budget"):
            choices = budget_choices(snapshot.budgets)
            chosen_id = st.selectbox("Budget", list(choices), format_func=choices.get)
            chosen = next(b for b in snapshot.budgets if b.id == chosen_id)
            with st.form("edit_budget"):
                name = st.text_input("Budget Name", value=chosen.name)
                limit = st.number_input(
                    f"Monthly Limit ({config.CURRENCY})",
                    min_value=0.0,
                    value=float(chosen.monthly_limit),
                    step=1000.0,
                )
                palette = list(BUDGET_COLORS)
                color = st.selectbox(
                    "Color", palette,
                    index=palette.index(chosen.color) if chosen.color in palette else 0,
                )
                if st.form_submit_button("Save Budget"):
                    run(
                        lambda: tracker.update_budget(chosen.id, name=name, monthly_limit=limit, color=color),
                        "Budget updated",
                    )

elif menu == "🧾 Transactions":
    st.title("🧾 Transactions")

    with st.expander("➕ Add Transaction"):
        with st.form("add_transaction", clear_on_submit=True):
            col1, col2 = st.columns(2)
            with col1:
                tx_type = st.radio("Type", [EXPENSE, INCOME], horizontal=True)
                amount = st.number_input(f"Amount ({config.CURRENCY})", min_value=0.0, step=100.0)
                category = st.text_input("Category", placeholder="e.g., Food, Salary")
            with col2:
                budget_options = {None: "Select budget (optional)", **budget_choices(snapshot.budgets)}
                budget_choice = st.selectbox(
                    "Budget (expenses only)", list(budget_options), format_func=budget_options.get
                )
                payment_method = st.selectbox("Payment Method", PAYMENT_METHODS)
                notes = st.text_input("Notes (optional)")
            if st.form_submit_button("Add Transaction"):
                run(
                    lambda: tracker.create_transaction(
                        tx_type, amount, category, budget_choice,
                        notes=notes, payment_method=payment_method,
                    ),
                    "✅ Transaction added!",
                )

    categories = [ALL_CATEGORIES, *distinct_categories(snapshot.transactions)]
    selected = st.selectbox("Filter by Category", categories)
    shown = recent_transactions(
        tuple(filter_by_category(snapshot.transactions, selected)), config.RECENT_LIMIT
    )
    if not shown:
        st.info("No transactions yet")
    for t in shown:
        c1, c2, c3, c4 = st.columns([3, 2, 2, 1])
        c1.write(f"**{t.category}**  \n{t.notes or 'No notes'}")
        c2.write(f"{'+' if t.type == INCOME else '-'}{fmt(t.magnitude)}  \n{t.date}")
        c3.caption(f"{budget_label(t, snapshot.budgets)} · {t.payment_method}")
        if c4.button("🗑", key=f"del_tx_{t.id}"):
            run(lambda t=t: tracker.delete_transaction(t.id), "Transaction deleted")

elif menu == "📊 Analytics":
    st.title("📊 Financial Analytics")
    col_m, col_c = st.columns(2)

    with col_m:
        st.subheader("Monthly Overview")
        months = recent_months(dashboard["months"], config.MONTHS_SHOWN)
        if months:
            labels = [key for key, _ in months]
            fig = go.Figure()
            fig.add_trace(go.Bar(x=labels, y=[m.income for _, m in months], name="Income"))
            fig.add_trace(go.Bar(x=labels, y=[m.expenses for _, m in months], name="Expenses"))
            fig.update_layout(barmode="group", template="plotly_dark", margin=dict(t=30, b=10, l=10, r=10))
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("No transactions yet")

    with col_c:
        st.subheader("Spending by Category")
        shares = dashboard["categories"]
        if shares:
            df_cat = pd.DataFrame(shares, columns=["Category", "Amount", "Percentage"])
            fig = px.bar(df_cat, x="Category", y="Amount", template="plotly_dark", color="Amount",
                         color_continuous_scale=px.colors.sequential.Emrld)
            st.plotly_chart(fig, use_container_width=True)
            st.table(df_cat.assign(
                Amount=df_cat["Amount"].map(fmt),
                Percentage=df_cat["Percentage"].map(lambda p: f"{p:.1f}%"),
            ))
        else:
            st.info("No expenses yet")

    st.subheader("Budget Performance")
    performance = dashboard["budgets"]
    if performance:
        cols = st.columns(3)
        for idx, row in enumerate(performance):
            with cols[idx % 3]:
                budget_card(row.budget, row.utilization)
                st.caption(f"Remaining: {fmt(row.remaining)}")
    else:
        st.info("No budgets defined")

elif menu == "⚙️ Settings":
    st.title("⚙️ Settings")
    st.caption(f"Data file: {config.DATA_FILE}")
    st.download_button(
        "⬇️ Download data (JSON)",
        json.dumps(snapshot_to_dict(snapshot), indent=2),
        file_name="budget_data.json",
        mime="application/json",
    )
    if st.button("↩️ Undo last change", disabled=not tracker.can_undo):
        tracker.undo()
        st.rerun()

    violations = invariant_violations(snapshot)
    if violations:
        st.warning(f"{len(violations)} budget(s) disagree with their transactions")
        st.table(pd.DataFrame(violations))
    else:
        st.caption("All budgets match their transactions.")
