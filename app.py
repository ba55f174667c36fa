"""
PaperLedger - Streamlit Application
Register, log in, record paper trades, and watch the balance over time.
"""

import streamlit as st
import logging
from datetime import date
from dotenv import load_dotenv

from config import get_settings
from db_engine import init_db
from exceptions import StorageError
from services import (
    AccountService,
    TradingService,
    LedgerSnapshot,
    Rejection,
    VALID_ACTIONS,
    STOCK_ACTIONS,
    transactions_to_frame,
    balance_history,
)
from repositories import LedgerRepository

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=get_settings().log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Configure Streamlit page
st.set_page_config(
    page_title="PaperLedger - Paper Trading Ledger",
    page_icon="📒",
    layout="wide"
)

# Initialize database
init_db()


# ==================== SESSION STATE ====================
if "current_user" not in st.session_state:
    st.session_state.current_user = None

if "snapshot" not in st.session_state:
    st.session_state.snapshot = None


# ==================== HELPER FUNCTIONS ====================
def apply_snapshot(snapshot: LedgerSnapshot):
    """Store the latest ledger snapshot for rendering."""
    st.session_state.snapshot = snapshot


def logout():
    """Clear the logged-in user."""
    st.session_state.current_user = None
    st.session_state.snapshot = None


# ==================== AUTH ====================
def render_login_form():
    """Render the login form."""
    with st.form("login_form"):
        username = st.text_input("Username", key="login_username")
        password = st.text_input("Password", type="password", key="login_password")
        submitted = st.form_submit_button("Login", use_container_width=True)

    if submitted:
        result = AccountService.login(username, password)
        if result.ok:
            st.session_state.current_user = username.strip()
            apply_snapshot(result)
            st.rerun()
        else:
            st.error(f"❌ {result.detail}")


def render_register_form():
    """Render the registration form."""
    with st.form("register_form"):
        username = st.text_input("Username", key="reg_username")
        password = st.text_input("Password", type="password", key="reg_password")
        submitted = st.form_submit_button("Register", use_container_width=True)

    if submitted:
        result = AccountService.register(username, password)
        if isinstance(result, Rejection):
            st.error(f"❌ {result.detail}")
        else:
            st.success("✅ Registration successful! Please log in.")


def render_auth():
    """Render the Login / Register tabs."""
    login_tab, register_tab = st.tabs(["🔑 Login", "📝 Register"])
    with login_tab:
        render_login_form()
    with register_tab:
        render_register_form()


# ==================== DASHBOARD ====================
def render_summary():
    """Render balance and holdings."""
    snapshot = st.session_state.snapshot
    try:
        holdings = LedgerRepository.get_holdings(st.session_state.current_user)
    except StorageError:
        logger.exception("Could not load holdings")
        holdings = {}

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Account Total", f"${snapshot.balance:,.2f}")
    with col2:
        st.metric("Transactions", f"{len(snapshot.log)}")
    with col3:
        st.metric("Open Positions", f"{len(holdings)}")

    if holdings:
        st.caption("Holdings: " + ", ".join(f"{stock} {qty:g}" for stock, qty in holdings.items()))


def render_trade_form():
    """Render form to record a new transaction."""
    st.subheader("➕ Add Transaction")

    # Outside the form so the stock field can react to the action
    action = st.selectbox("Action", VALID_ACTIONS, format_func=str.capitalize, key="trade_action")

    with st.form("trade_form", clear_on_submit=True):
        col1, col2, col3 = st.columns(3)
        with col1:
            trade_date = st.date_input("Date", value=date.today())
        with col2:
            stock = None
            if action in STOCK_ACTIONS:
                stock = st.text_input("Stock", placeholder="e.g., AAPL")
        with col3:
            amount = st.number_input("Amount ($)", min_value=0.0, step=1.0, value=0.0)

        submitted = st.form_submit_button("Add Transaction", use_container_width=True)

    if submitted:
        result = TradingService.submit(
            st.session_state.current_user,
            {
                "date": trade_date.isoformat(),
                "stock": stock,
                "amount": amount,
                "action": action,
            }
        )
        if result.ok:
            apply_snapshot(result)
            st.success("✅ Transaction added successfully!")
            st.rerun()
        else:
            st.error(f"❌ {result.detail}")


def render_transactions():
    """Render the transactions table, most recent first."""
    st.subheader("📜 Transactions")
    log = st.session_state.snapshot.log
    if not log:
        st.info("No transactions yet")
        return
    st.dataframe(
        transactions_to_frame(log),
        use_container_width=True,
        hide_index=True,
        column_config={"Amount": st.column_config.NumberColumn(format="$%.2f")}
    )


def render_balance_chart():
    """Render the balance-over-time chart."""
    st.subheader("📈 Balance ($)")
    history = balance_history(st.session_state.snapshot.log)
    if history.empty:
        st.info("Add a transaction to see your balance history.")
        return
    st.line_chart(history, x="date", y="balance")


def render_dashboard():
    """Render the logged-in dashboard."""
    col1, col2 = st.columns([4, 1])
    with col1:
        st.markdown(f"Welcome, **{st.session_state.current_user}**")
    with col2:
        if st.button("Logout", use_container_width=True):
            logout()
            st.rerun()

    render_summary()
    st.markdown("---")
    render_trade_form()
    st.markdown("---")

    left, right = st.columns(2)
    with left:
        render_transactions()
    with right:
        render_balance_chart()


# ==================== MAIN APP ====================
def main():
    """Main application entry point."""
    st.title("📒 PaperLedger")
    st.markdown("*Paper trading ledger: track invested cash, trades and balance*")

    if st.session_state.current_user is None:
        render_auth()
    else:
        render_dashboard()

    # Footer
    st.markdown("---")
    st.markdown(
        "<div style='text-align: center; color: gray;'>"
        "⚠️ Paper trading only. No real market data or money involved.</div>",
        unsafe_allow_html=True
    )


if __name__ == "__main__":
    main()
