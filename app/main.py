"""
Streamlit Frontend for Finance Tracker

Every page drives one module operation and shows its errors inline.

DESIGN PRINCIPLES:
1. One SessionContext per browser session (st.session_state)
2. Components are built once per process (st.cache_resource)
3. Errors are shown where the user acted, form values are kept
4. Budgets live only in this browser session

Run with:
    streamlit run app/main.py
"""

import asyncio
from datetime import date
from typing import Optional

import plotly.express as px
import streamlit as st

from finance_tracker.audit import configure_logging
from finance_tracker.config import get_settings, validate_all_settings
from finance_tracker.dashboard import BudgetBook
from finance_tracker.models import (
    SubscriptionFrequency,
    TransactionCategory,
    TransactionType,
    UploadedImage,
)
from finance_tracker.orchestrator import AppComponents, create_app_components
from finance_tracker.services.auth import AuthError, SessionContext
from finance_tracker.services.image import ObjectStorageError
from finance_tracker.services.storage import StorageError
from finance_tracker.tracking import net_balance
from finance_tracker.validation import ValidationError


# Errors a user can act on; anything else is a bug and propagates
USER_ERRORS = (AuthError, ValidationError, ObjectStorageError, StorageError)


# Page configuration
st.set_page_config(
    page_title="Finance Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .over-budget {
        padding: 10px 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 5px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    configure_logging(get_settings().app.log_level)
    return create_app_components(use_storage=True)


def get_session() -> SessionContext:
    if "session" not in st.session_state:
        st.session_state.session = SessionContext()
    return st.session_state.session


def get_budget_book() -> BudgetBook:
    if "budgets" not in st.session_state:
        st.session_state.budgets = BudgetBook()
    return st.session_state.budgets


def to_uploaded_image(uploaded_file) -> Optional[UploadedImage]:
    if uploaded_file is None:
        return None
    return UploadedImage(
        filename=uploaded_file.name,
        content_type=uploaded_file.type or "",
        data=uploaded_file.getvalue(),
    )


def money(amount) -> str:
    return f"${amount:,.2f}"


def main():
    """Main application entry point."""
    components = get_components()
    session = get_session()

    st.sidebar.title("💰 Finance Tracker")
    if components.local_mode:
        st.sidebar.warning("Local mode: data is kept in memory only.")
    st.sidebar.markdown("---")

    if not session.is_authenticated:
        render_auth_page(components, session)
        return

    user = session.user
    if user.photo_url:
        st.sidebar.image(user.photo_url, width=64)
    st.sidebar.markdown(f"**{user.display_name or user.email}**")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "➕ Add Transaction",
            "📄 Transactions",
            "📊 Dashboard",
            "🎯 Goals",
            "🔁 Subscriptions",
            "ℹ️ About & Contact",
            "⚙️ Settings",
        ],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("Sign out"):
        run_async(components.auth.sign_out(session))
        st.session_state.pop("budgets", None)
        st.rerun()

    if page == "➕ Add Transaction":
        render_add_transaction_page(components, session)
    elif page == "📄 Transactions":
        render_transactions_page(components, session)
    elif page == "📊 Dashboard":
        render_dashboard_page(components, session)
    elif page == "🎯 Goals":
        render_goals_page(components, session)
    elif page == "🔁 Subscriptions":
        render_subscriptions_page(components, session)
    elif page == "ℹ️ About & Contact":
        render_about_page(components, session)
    elif page == "⚙️ Settings":
        render_settings_page(components, session)


def render_auth_page(components: AppComponents, session: SessionContext):
    """Sign in / sign up."""
    st.title("Welcome to Finance Tracker")
    sign_in_tab, sign_up_tab = st.tabs(["Sign in", "Sign up"])

    with sign_in_tab:
        with st.form("sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary")
        if submitted:
            try:
                run_async(components.auth.sign_in(session, email, password))
                st.rerun()
            except AuthError as e:
                st.error(str(e))

    with sign_up_tab:
        with st.form("sign_up"):
            display_name = st.text_input("Display name (optional)")
            email = st.text_input("Email", key="sign_up_email")
            password = st.text_input("Password", type="password", key="sign_up_password")
            avatar = st.file_uploader(
                "Avatar (optional)",
                type=get_settings().app.supported_formats_list,
            )
            submitted = st.form_submit_button("Create account", type="primary")
        if submitted:
            try:
                run_async(components.auth.sign_up(
                    session,
                    email,
                    password,
                    display_name=display_name,
                    avatar=to_uploaded_image(avatar),
                ))
                st.rerun()
            except USER_ERRORS as e:
                st.error(str(e))


def render_add_transaction_page(components: AppComponents, session: SessionContext):
    st.title("➕ Add Transaction")

    with st.form("add_transaction", clear_on_submit=False):
        col1, col2 = st.columns(2)
        with col1:
            entry_date = st.date_input("Date", value=date.today())
            category = st.selectbox(
                "Category",
                options=list(TransactionCategory),
                format_func=lambda c: c.value,
            )
        with col2:
            amount = st.text_input("Amount", placeholder="25.50")
            entry_type = st.radio(
                "Type",
                options=list(TransactionType),
                format_func=lambda t: t.value,
                horizontal=True,
                index=1,
            )
        notes = st.text_area("Notes (optional)")
        receipt = st.file_uploader(
            "Receipt image (optional)",
            type=get_settings().app.supported_formats_list,
        )
        submitted = st.form_submit_button("Add Transaction", type="primary")

    if submitted:
        with st.spinner("Saving..."):
            try:
                transaction = run_async(components.ledger.submit_transaction(
                    session,
                    entry_date.isoformat() if entry_date else "",
                    category,
                    amount,
                    entry_type,
                    notes=notes,
                    image=to_uploaded_image(receipt),
                ))
            except USER_ERRORS as e:
                st.error(str(e))
                return
        st.success(
            f"Saved {transaction.type.value.lower()} of {money(transaction.magnitude)} "
            f"({transaction.category.value})"
        )


def render_transactions_page(components: AppComponents, session: SessionContext):
    st.title("📄 Transactions")

    try:
        transactions = run_async(components.ledger.list_transactions(session))
    except USER_ERRORS as e:
        st.error(str(e))
        return

    if not transactions:
        st.info("No transactions yet. Use 'Add Transaction' to record one.")
        return

    st.dataframe(
        [
            {
                "Date": t.date.isoformat(),
                "Category": t.category.value,
                "Type": t.type.value,
                "Amount": float(t.amount),
                "Notes": t.notes,
                "Receipt": t.image_url or None,
            }
            for t in transactions
        ],
        column_config={
            "Amount": st.column_config.NumberColumn(format="$%.2f"),
            "Receipt": st.column_config.LinkColumn(display_text="View"),
        },
        use_container_width=True,
        hide_index=True,
    )


def render_dashboard_page(components: AppComponents, session: SessionContext):
    st.title("📊 Dashboard")

    try:
        summary = run_async(components.dashboard.load(session))
    except USER_ERRORS as e:
        st.error(str(e))
        return

    if summary.is_empty:
        st.info("No data to display.")
        return

    col1, col2, col3 = st.columns(3)
    col1.metric("Total Income", money(summary.total_income))
    col2.metric("Total Expenses", money(summary.total_expenses))
    col3.metric("Balance", money(summary.balance))

    chart_col1, chart_col2 = st.columns(2)
    with chart_col1:
        if summary.expenses_by_category:
            fig = px.pie(
                names=list(summary.expenses_by_category),
                values=[float(v) for v in summary.expenses_by_category.values()],
                title="Expenses by Category",
                hole=0.4,
            )
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("No expenses recorded.")
    with chart_col2:
        fig = px.line(
            x=[p.date for p in summary.balance_history],
            y=[float(p.balance) for p in summary.balance_history],
            labels={"x": "Date", "y": "Balance"},
            title="Balance Over Time",
            markers=True,
        )
        st.plotly_chart(fig, use_container_width=True)

    st.subheader("Budgets")
    st.caption("Budgets are kept for this session only.")
    budgets = get_budget_book()
    for status in budgets.statuses(summary):
        col1, col2 = st.columns([2, 1])
        with col1:
            value = st.text_input(
                f"{status.category} budget (spent {money(status.spent)})",
                value=str(status.budget or ""),
                key=f"budget_{status.category}",
            )
        try:
            budgets.set_budget(status.category, value)
        except ValidationError as e:
            col2.error(str(e))
            continue
        budget = budgets.budget_for(status.category)
        if budget and status.spent > budget:
            col2.markdown(
                f'<div class="over-budget">Over budget by {money(status.spent - budget)}</div>',
                unsafe_allow_html=True,
            )


def render_goals_page(components: AppComponents, session: SessionContext):
    st.title("🎯 Savings Goals")

    with st.form("add_goal"):
        name = st.text_input("Goal name")
        col1, col2 = st.columns(2)
        target = col1.text_input("Target amount")
        deadline = col2.date_input("Deadline", value=None)
        submitted = st.form_submit_button("Add Goal", type="primary")
    if submitted:
        try:
            run_async(components.goals.add_goal(
                session,
                name,
                target,
                deadline.isoformat() if deadline else "",
            ))
            st.success("Goal added")
        except USER_ERRORS as e:
            st.error(str(e))

    try:
        goals = run_async(components.goals.list_goals(session))
        transactions = run_async(components.ledger.list_transactions(session))
    except USER_ERRORS as e:
        st.error(str(e))
        return

    if not goals:
        st.info("No goals yet.")
        return

    st.caption(f"Current net balance: {money(net_balance(transactions))}")

    for goal in goals:
        st.markdown("---")
        st.markdown(f"**{goal.name}**: {money(goal.current_amount)} of "
                    f"{money(goal.target_amount)} by {goal.deadline.isoformat()}")
        st.progress(goal.progress / 100, text=f"{goal.progress:.0f}%")

        col1, col2, col3, col4 = st.columns([1, 1, 1, 1])
        if col1.button("Allocate net balance", key=f"allocate_{goal.id}"):
            try:
                run_async(components.goals.allocate_net_balance(session, goal.id))
                st.rerun()
            except USER_ERRORS as e:
                st.error(str(e))
        new_amount = col2.text_input(
            "Set current amount",
            value=str(goal.current_amount),
            key=f"amount_{goal.id}",
            label_visibility="collapsed",
        )
        if col3.button("Update", key=f"update_{goal.id}"):
            try:
                run_async(components.goals.update_progress(session, goal.id, new_amount))
                st.rerun()
            except USER_ERRORS as e:
                st.error(str(e))
        if col4.button("Delete", key=f"delete_{goal.id}"):
            try:
                run_async(components.goals.delete_goal(session, goal.id))
                st.rerun()
            except USER_ERRORS as e:
                st.error(str(e))


def render_subscriptions_page(components: AppComponents, session: SessionContext):
    st.title("🔁 Subscriptions")

    editing = st.session_state.get("editing_subscription")

    with st.form("subscription"):
        name = st.text_input("Name", value=editing.name if editing else "")
        amount = st.text_input("Amount", value=str(editing.amount) if editing else "")
        frequencies = list(SubscriptionFrequency)
        frequency = st.selectbox(
            "Frequency",
            options=frequencies,
            index=frequencies.index(editing.frequency) if editing else 0,
            format_func=lambda f: f.value.capitalize(),
        )
        submitted = st.form_submit_button(
            "Update Subscription" if editing else "Add Subscription",
            type="primary",
        )
    if editing and st.button("Cancel edit"):
        st.session_state.pop("editing_subscription", None)
        st.rerun()

    if submitted:
        try:
            run_async(components.subscriptions.upsert_subscription(
                session,
                name,
                amount,
                frequency,
                editing_id=editing.id if editing else None,
            ))
            st.session_state.pop("editing_subscription", None)
            st.rerun()
        except USER_ERRORS as e:
            st.error(str(e))

    try:
        subscriptions = run_async(components.subscriptions.list_subscriptions(session))
    except USER_ERRORS as e:
        st.error(str(e))
        return

    if not subscriptions:
        st.info("No subscriptions yet.")
        return

    for subscription in subscriptions:
        col1, col2, col3 = st.columns([3, 1, 1])
        col1.markdown(
            f"**{subscription.name}**: {money(subscription.amount)} "
            f"/ {subscription.frequency.value}"
        )
        if col2.button("Edit", key=f"edit_{subscription.id}"):
            st.session_state.editing_subscription = subscription
            st.rerun()
        if col3.button("Delete", key=f"delete_{subscription.id}"):
            try:
                run_async(components.subscriptions.delete_subscription(
                    session, subscription.id
                ))
                st.rerun()
            except USER_ERRORS as e:
                st.error(str(e))


def render_about_page(components: AppComponents, session: SessionContext):
    st.title("ℹ️ About")
    st.markdown(
        "Finance Tracker helps you record income and expenses, set savings "
        "goals, keep an eye on subscriptions and see where your money goes."
    )

    st.subheader("Contact us")
    user = session.user
    with st.form("contact"):
        name = st.text_input("Name", value=(user.display_name or "") if user else "")
        email = st.text_input("Email", value=user.email if user else "")
        message = st.text_area("Message")
        submitted = st.form_submit_button("Send", type="primary")
    if submitted:
        try:
            run_async(components.contact_form.submit(session, name, email, message))
            st.success("Thanks! Your message has been sent.")
        except USER_ERRORS as e:
            st.error(str(e))


def render_settings_page(components: AppComponents, session: SessionContext):
    """Profile and connection status."""
    st.title("⚙️ Settings")

    st.markdown("### Profile")
    user = session.user
    with st.form("profile"):
        display_name = st.text_input("Display name", value=user.display_name or "")
        photo_url = st.text_input("Avatar URL", value=user.photo_url or "")
        submitted = st.form_submit_button("Save profile")
    if submitted:
        try:
            run_async(components.auth.update_profile(
                session,
                display_name=display_name,
                photo_url=photo_url,
            ))
            st.success("Profile updated")
        except USER_ERRORS as e:
            st.error(str(e))

    st.markdown("### Connection Status")
    status = validate_all_settings()
    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Cloudinary (Images)", "cloudinary"),
        ("Email (Contact notifications)", "email"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")


if __name__ == "__main__":
    main()
