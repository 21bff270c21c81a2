"""
Streamlit Frontend for FinGrow

DESIGN PRINCIPLES:
1. Pages are thin: they call controllers for changes and the app's view
   methods for everything they display
2. Clear error messages in simple language
3. Visual feedback for all operations
4. Amounts are shown in the chosen currency label, never converted

Run with:
    streamlit run app/main.py
"""

import asyncio
from datetime import date, datetime, time
from decimal import Decimal

import pandas as pd
import plotly.express as px
import streamlit as st
from pydantic import ValidationError

from fingrow.agents import EXAMPLE_INVESTMENT_QUERIES, INVESTMENT_DISCLAIMER
from fingrow.config import validate_all_settings
from fingrow.ledger import format_currency, format_percent
from fingrow.ledger.planner import savings_projection
from fingrow.models import (
    ASSET_CATEGORIES,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    LIABILITY_CATEGORIES,
    SUPPORTED_CURRENCIES,
    DateRange,
    EntryInput,
    RecordInput,
    TransactionInput,
    TransactionType,
)
from fingrow.orchestrator import FinGrowApp, create_app_components
from fingrow.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="TSF-FinGrow",
    page_icon="🌱",
    layout="wide",
    initial_sidebar_state="expanded",
)

DATE_RANGE_LABELS = {
    DateRange.THIS_MONTH: "This Month",
    DateRange.LAST_MONTH: "Last Month",
    DateRange.LAST_3_MONTHS: "Last 3 Months",
    DateRange.ALL_TIME: "All Time",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> FinGrowApp:
    """Get or create application components (cached)."""
    return create_app_components()


def show_validation_error(error: ValidationError) -> None:
    for issue in error.errors():
        field = ".".join(str(part) for part in issue["loc"]) or "input"
        st.error(f"{field.capitalize()}: {issue['msg']}")


def to_datetime(day: date) -> datetime:
    return datetime.combine(day, time.min)


def main():
    """Main application entry point."""
    app = get_components()

    # Sidebar navigation
    st.sidebar.title("🌱 TSF-FinGrow")
    st.sidebar.markdown("---")

    pages = {
        "🏠 Dashboard": render_dashboard_page,
        "💳 Transactions": render_transactions_page,
        "🧾 Expense Tracker": render_expense_tracker_page,
        "🎯 Budget": render_budget_page,
        "📈 Net Worth": render_net_worth_page,
        "🤖 AI Advisor": render_advisor_page,
        "🔎 Investments": render_investments_page,
        "📝 Records": render_records_page,
        "⚙️ Settings": render_settings_page,
    }
    page = st.sidebar.radio("Navigate to:", list(pages), index=0)

    try:
        pages[page](app)
    except StorageError as e:
        st.error(f"Could not save your changes: {e}")


def render_dashboard_page(app: FinGrowApp):
    """Totals, trends and the latest transactions."""
    st.title("🏠 Dashboard")
    view = app.dashboard()
    money = lambda amount: format_currency(amount, view.currency)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Income", money(view.totals.income))
    col2.metric("Total Expenses", money(view.totals.expenses))
    col3.metric("Balance", money(view.totals.balance))
    col4.metric("Avg. Daily Spend (this month)", money(view.average_daily_spend))

    left, right = st.columns(2)
    with left:
        if view.monthly:
            df = pd.DataFrame(
                [
                    {"Month": b.label, "Income": float(b.income), "Expenses": float(b.expenses)}
                    for b in view.monthly
                ]
            )
            fig = px.bar(
                df, x="Month", y=["Income", "Expenses"], barmode="group",
                title="Income vs Expenses",
            )
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("Add transactions to see your monthly trend.")

    with right:
        if view.spending_by_category:
            fig = px.pie(
                values=[float(c.value) for c in view.spending_by_category],
                names=[c.name for c in view.spending_by_category],
                title="Spending by Category",
            )
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("No expenses recorded yet.")

    st.subheader("Recent Transactions")
    if not view.recent:
        st.info("No transactions yet. Use the Transactions page to add your first one.")
    for t in view.recent:
        sign = "+" if t.type == TransactionType.INCOME else "-"
        st.markdown(
            f"**{t.description}** · {t.category} · {t.date:%d %b %Y} · "
            f"{sign}{money(t.amount)}"
        )


def render_transaction_form(app: FinGrowApp):
    with st.form("transaction_form", clear_on_submit=True):
        st.markdown("### Add Transaction")
        col1, col2 = st.columns(2)
        with col1:
            kind = st.radio(
                "Type",
                list(TransactionType),
                format_func=lambda t: t.value.capitalize(),
                horizontal=True,
            )
            description = st.text_input("Description")
            amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
        with col2:
            categories = INCOME_CATEGORIES if kind == TransactionType.INCOME else EXPENSE_CATEGORIES
            category = st.selectbox("Category", categories)
            day = st.date_input("Date", value=date.today())

        if st.form_submit_button("Add Transaction", type="primary"):
            try:
                draft = TransactionInput(
                    description=description,
                    amount=Decimal(str(amount)),
                    type=kind,
                    category=category,
                    date=to_datetime(day),
                )
            except ValidationError as e:
                show_validation_error(e)
                return
            app.transactions.add(draft)
            st.success("Transaction added")


def render_transactions_page(app: FinGrowApp):
    st.title("💳 Transactions")
    render_transaction_form(app)

    st.markdown("---")
    query = st.text_input("Search by description", placeholder="e.g. groceries")
    currency = app.preferences.currency
    matches = app.transactions.search(query)

    if not matches:
        st.info("No transactions found.")
    for t in matches:
        col1, col2, col3 = st.columns([6, 2, 1])
        col1.markdown(f"**{t.description}**  \n{t.category} · {t.date:%d %b %Y}")
        color = "green" if t.type == TransactionType.INCOME else "red"
        col2.markdown(f":{color}[{format_currency(t.amount, currency)}]")
        if col3.button("🗑️", key=f"delete_tx_{t.id}"):
            app.transactions.delete(t.id)
            st.rerun()


def render_expense_tracker_page(app: FinGrowApp):
    st.title("🧾 Expense Tracker")

    date_range = st.selectbox(
        "Period",
        list(DateRange),
        format_func=lambda r: DATE_RANGE_LABELS[r],
    )
    view = app.expense_tracker(date_range)
    money = lambda amount: format_currency(amount, view.currency)

    col1, col2, col3 = st.columns(3)
    col1.metric("Total Spent", money(view.summary.total))
    col2.metric("Transactions", view.summary.count)
    col3.metric("Average Expense", money(view.summary.average))

    if not view.expenses:
        st.info("No expenses in this period.")
        return

    left, right = st.columns(2)
    with left:
        df = pd.DataFrame([{"Date": d.date, "Amount": float(d.amount)} for d in view.daily])
        st.plotly_chart(px.bar(df, x="Date", y="Amount", title="Daily Spending"), use_container_width=True)
    with right:
        fig = px.pie(
            values=[float(c.value) for c in view.by_category],
            names=[c.name for c in view.by_category],
            title="By Category",
        )
        st.plotly_chart(fig, use_container_width=True)

    st.dataframe(
        pd.DataFrame(
            [
                {
                    "Date": f"{t.date:%Y-%m-%d}",
                    "Description": t.description,
                    "Category": t.category,
                    "Amount": money(t.amount),
                }
                for t in view.expenses
            ]
        ),
        hide_index=True,
        use_container_width=True,
    )


def render_budget_page(app: FinGrowApp):
    st.title("🎯 Budget")
    currency = app.preferences.currency
    money = lambda amount: format_currency(amount, currency)
    plan = app.budgets.plan()

    col1, col2, col3 = st.columns(3)
    col1.metric("Projected Income (last month)", money(plan.projected_income))
    col2.metric("Savings Goal", money(plan.financial_goal))
    col3.metric("Total Budgeted", money(plan.total_budgeted))

    if plan.is_deficit:
        st.warning(f"Your budgets exceed what's available by {money(-plan.surplus_or_deficit)}.")
    else:
        st.success(f"Unallocated after budgets and savings: {money(plan.surplus_or_deficit)}")

    goal = st.number_input(
        "Monthly savings goal",
        min_value=0.0,
        value=float(plan.financial_goal),
        step=50.0,
    )
    if st.button("Update goal"):
        if app.preferences.update_financial_goal(Decimal(str(goal))):
            st.rerun()

    st.markdown("### Category Budgets")
    for progress in plan.categories:
        col1, col2 = st.columns([3, 1])
        with col1:
            label = (
                f"**{progress.category}**: {money(progress.spent)} of {money(progress.limit)} "
                f"({format_percent(progress.progress)})"
            )
            st.markdown(f":red[{label}]" if progress.is_over_budget else label)
            st.progress(float(progress.display_progress) / 100)
        with col2:
            new_limit = st.number_input(
                "Limit",
                min_value=0.0,
                value=float(progress.limit),
                step=50.0,
                key=f"limit_{progress.category}",
                label_visibility="collapsed",
            )
            if Decimal(str(new_limit)) != progress.limit:
                if app.budgets.update_budget_limit(progress.category, Decimal(str(new_limit))):
                    st.rerun()

    st.markdown("---")
    st.markdown("### Savings Calculator")
    income = st.number_input("Monthly income", min_value=0.0, step=100.0)
    expense_table = st.data_editor(
        pd.DataFrame([{"Expense": "Rent", "Amount": 0.0}]),
        num_rows="dynamic",
        key="calculator_expenses",
    )
    amounts = [Decimal(str(a)) for a in expense_table["Amount"].fillna(0)]
    projection = savings_projection(Decimal(str(income)), amounts)
    col1, col2 = st.columns(2)
    col1.metric("Monthly Savings", money(projection.monthly_savings))
    col2.metric("Annual Savings", money(projection.annual_savings))


def render_entry_list(title: str, controller, categories: list[str], currency: str):
    st.subheader(title)
    with st.form(f"{title}_form", clear_on_submit=True):
        description = st.text_input("Description")
        amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
        category = st.selectbox("Category", categories)
        day = st.date_input("Date", value=date.today())
        if st.form_submit_button(f"Add {title[:-1] if title.endswith('s') else title}"):
            try:
                controller.add(
                    EntryInput(
                        description=description,
                        amount=Decimal(str(amount)),
                        category=category,
                        date=to_datetime(day),
                    )
                )
            except ValidationError as e:
                show_validation_error(e)
            else:
                st.rerun()

    for entry in controller.list_items():
        col1, col2, col3 = st.columns([5, 2, 1])
        col1.markdown(f"**{entry.description}**  \n{entry.category} · {entry.date:%d %b %Y}")
        col2.markdown(format_currency(entry.amount, currency))
        if col3.button("🗑️", key=f"delete_{title}_{entry.id}"):
            controller.delete(entry.id)
            st.rerun()


def render_net_worth_page(app: FinGrowApp):
    st.title("📈 Net Worth")
    currency = app.preferences.currency
    summary = app.net_worth()

    col1, col2, col3 = st.columns(3)
    col1.metric("Total Assets", format_currency(summary.total_assets, currency))
    col2.metric("Total Liabilities", format_currency(summary.total_liabilities, currency))
    col3.metric("Net Worth", format_currency(summary.net_worth, currency))

    left, right = st.columns(2)
    for column, breakdown, name in (
        (left, summary.asset_breakdown, "Assets"),
        (right, summary.liability_breakdown, "Liabilities"),
    ):
        with column:
            if breakdown:
                fig = px.pie(
                    values=[float(c.value) for c in breakdown],
                    names=[c.name for c in breakdown],
                    title=f"{name} by Category",
                )
                st.plotly_chart(fig, use_container_width=True)

    left, right = st.columns(2)
    with left:
        render_entry_list("Assets", app.assets, ASSET_CATEGORIES, currency)
    with right:
        render_entry_list("Liabilities", app.liabilities, LIABILITY_CATEGORIES, currency)


def render_advisor_page(app: FinGrowApp):
    st.title("🤖 AI Advisor")

    for message in app.advisor.messages:
        with st.chat_message("assistant" if message.role == "model" else "user"):
            st.markdown(message.text)

    question = st.chat_input("Ask Finley about your finances...")
    if question:
        with st.chat_message("user"):
            st.markdown(question)
        with st.chat_message("assistant"):
            placeholder = st.empty()
            with st.spinner("Finley is thinking..."):
                run_async(app.ask_advisor(question, on_chunk=placeholder.markdown))
        st.rerun()

    if st.button("Start a new conversation"):
        app.advisor.reset()
        st.rerun()


def render_investments_page(app: FinGrowApp):
    st.title("🔎 Investment Research")
    st.caption(INVESTMENT_DISCLAIMER)

    st.markdown("**Try asking:**")
    columns = st.columns(len(EXAMPLE_INVESTMENT_QUERIES))
    chosen = None
    for column, example in zip(columns, EXAMPLE_INVESTMENT_QUERIES):
        if column.button(example, key=f"example_{example}"):
            chosen = example

    query = st.text_input("Your question", value=chosen or "")
    if (st.button("Search", type="primary") or chosen) and query.strip():
        with st.spinner("Searching the web..."):
            run_async(app.investment_search.search(query))

    result = app.investment_search.result
    if result is None:
        return

    if result.is_error:
        st.error(result.text)
        return

    st.markdown(result.text)
    if result.sources:
        st.markdown("**Sources**")
        for source in result.sources:
            st.markdown(f"- [{source.title}]({source.uri})")


def render_records_page(app: FinGrowApp):
    st.title("📝 Records")

    editing = st.session_state.get("editing_record")
    record = app.records.get(editing) if editing else None

    with st.form("record_form", clear_on_submit=True):
        st.markdown("### Edit Record" if record else "### New Record")
        title = st.text_input("Title", value=record.title if record else "")
        content = st.text_area("Content", value=record.content if record else "", height=150)
        if st.form_submit_button("Save", type="primary"):
            try:
                if record:
                    app.records.update({"id": record.id, "title": title, "content": content})
                    st.session_state.editing_record = None
                else:
                    app.records.add(RecordInput(title=title, content=content))
            except ValidationError as e:
                show_validation_error(e)
            else:
                st.rerun()

    query = st.text_input("Search records", placeholder="Search by title or content")
    for item in app.records.search(query):
        with st.expander(f"{item.title} · updated {item.date:%d %b %Y %H:%M}"):
            st.markdown(item.content or "_No content_")
            col1, col2 = st.columns(2)
            if col1.button("Edit", key=f"edit_{item.id}"):
                st.session_state.editing_record = item.id
                st.rerun()
            if col2.button("Delete", key=f"delete_record_{item.id}"):
                app.records.delete(item.id)
                st.rerun()


def render_settings_page(app: FinGrowApp):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Display Currency")
    codes = list(SUPPORTED_CURRENCIES)
    current = app.preferences.currency
    choice = st.selectbox(
        "Currency",
        codes,
        index=codes.index(current) if current in codes else 0,
        format_func=lambda code: f"{code} - {SUPPORTED_CURRENCIES[code]}",
    )
    if choice != current and app.preferences.set_currency(choice):
        st.rerun()
    st.caption("Amounts are relabelled only; no conversion is applied.")

    st.markdown("### Connection Status")
    status = validate_all_settings()
    st.markdown(f"**Storage backend:** `{app.store.backend.name}`")

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (AI)", "gemini"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.warning(f"⚠️ {name} - {error}")

    st.markdown("### Recent Activity")
    for event in reversed(app.audit.history[-20:]):
        st.markdown(f"`{event.timestamp:%H:%M:%S}` {event.description}")

    st.markdown("---")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
