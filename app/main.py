"""
Streamlit Frontend for Secure Retire

Pages for registration, the financial overview, record management,
the budget, documents, planning calculators, beneficiaries and the will
generator, the assistant, notifications and account settings.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Features that cost credits say so before they run
4. Visual feedback for all operations
5. No hidden actions

Without a configured backend the app runs as an in-memory demo: the
registration wizard creates a local account that lasts for the session.
"""

import asyncio
import json
from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID, uuid4

import streamlit as st

from secure_retire.agents import GREETING, QUICK_QUESTIONS
from secure_retire.agents.insights import SOURCE_RULES
from secure_retire.billing import CREDIT_OPERATIONS, InsufficientCreditsError, plan_price
from secure_retire.calculators import (
    FilingStatus,
    RetirementGoals,
    RiskTolerance,
    TaxInput,
    percentage_total_message,
    readiness_band,
    target_profile,
    validate_percentage_total,
)
from secure_retire.calculators.allocation import ASSET_CLASS_CATEGORIES
from secure_retire.calculators.budget import CATEGORY_NAMES
from secure_retire.config import get_settings, validate_all_settings
from secure_retire.currency import COUNTRIES, SUPPORTED_CURRENCIES, format_amount
from secure_retire.i18n import SUPPORTED_LANGUAGES
from secure_retire.models import (
    JURISDICTIONS,
    Asset,
    AssetType,
    Beneficiary,
    Consultation,
    ConsultationStatus,
    Debt,
    DebtType,
    DocumentType,
    IncomeFrequency,
    IncomeSource,
    PlanType,
    PortfolioAllocation,
    RelationshipType,
    RetirementAccount,
    RetirementAccountType,
    WillData,
    witness_requirements_for,
)
from secure_retire.notifications import NotificationPoller
from secure_retire.orchestrator import EXPORT_SECTIONS, AppComponents, create_app_components
from secure_retire.registration import STEP_NAMES, RegistrationDraft, WizardStepError
from secure_retire.reports import InvalidWillError
from secure_retire.services import AuthError, EdgeFunctionError, StorageError
from secure_retire.validation import (
    get_user_friendly_summary,
    national_id_label,
    national_id_placeholder,
)


# Page configuration
st.set_page_config(
    page_title="Secure Retire",
    page_icon="🏖️",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
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
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def init_session():
    defaults = {
        "user_id": None,
        "user_email": "",
        "language": "en",
        "currency": "USD",
        "draft": None,
        "insights": [],
        "checkout_url": None,
        "checkout_error": "",
        "flash": "",
        "reminders_checked": False,
        "poller": None,
        "chat": [],
        "will_pdf": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def label(value) -> str:
    return str(getattr(value, "value", value)).replace("_", " ").title()


def money(amount) -> str:
    return format_amount(amount, st.session_state.currency)


def credit_caption(components: AppComponents, user_id: UUID, key: str):
    """Show what an operation costs; returns whether it may run."""
    allowed, message = run_async(components.credit_gate(user_id).check(key))
    if allowed:
        st.caption(f"💳 {message}")
    else:
        st.warning(message)
    return allowed


def main():
    """Main application entry point."""
    init_session()
    components = get_components()
    tr = components.translator(st.session_state.language)
    t = tr.t

    st.sidebar.title("🏖️ Secure Retire")
    st.session_state.language = st.sidebar.selectbox(
        t("common.language"),
        options=list(SUPPORTED_LANGUAGES),
        index=list(SUPPORTED_LANGUAGES).index(st.session_state.language),
        format_func=lambda code: SUPPORTED_LANGUAGES[code],
    )
    codes = [c.code for c in SUPPORTED_CURRENCIES]
    st.session_state.currency = st.sidebar.selectbox(
        t("common.currency"),
        options=codes,
        index=codes.index(st.session_state.currency) if st.session_state.currency in codes else 0,
    )

    if not components.is_connected:
        st.sidebar.info("Offline demo: data is kept in memory for this session.")

    if st.session_state.user_id is None:
        render_auth_page(components, t)
        return

    user_id = st.session_state.user_id
    handle_checkout_return(components, user_id)
    render_pending_notices()
    send_reminders(components, user_id)

    status = run_async(components.account(user_id).status())
    unread = run_async(components.notifications(user_id).unread_count())

    st.sidebar.markdown("---")
    if status.is_pro:
        st.sidebar.success("⭐ Pro - unlimited credits")
    else:
        st.sidebar.metric(t("credits.remaining"), status.remaining_credits)
        if status.is_low:
            st.sidebar.warning(t("credits.low"))

    pages = {
        "overview": f"📊 {t('nav.overview')}",
        "financial": f"💼 {t('nav.financialManagement')}",
        "budget": "💵 Budget",
        "documents": f"📄 {t('nav.documentsHandling')}",
        "retirement": f"🧮 {t('nav.retirementCalculator')}",
        "tax": f"🧾 {t('nav.taxEstimator')}",
        "investments": f"📈 {t('nav.investmentSettings')}",
        "beneficiaries": f"👪 {t('nav.beneficiaries')}",
        "consultations": f"🗓️ {t('nav.consultations')}",
        "assistant": "💬 Assistant",
        "notifications": f"🔔 {t('nav.notifications')}" + (f" ({unread})" if unread else ""),
        "settings": f"⚙️ {t('nav.profileSettings')}",
    }
    page = st.sidebar.radio("Navigate to:", list(pages), format_func=pages.get)

    if st.sidebar.button(f"🚪 {t('nav.signout')}"):
        flow = components.auth_flow()
        if flow is not None:
            run_async(flow.sign_out(user_id))
        end_session()
        st.rerun()

    with st.sidebar:
        watch_notifications(components, user_id)

    renderers = {
        "overview": render_overview_page,
        "financial": render_financial_page,
        "budget": render_budget_page,
        "documents": render_documents_page,
        "retirement": render_retirement_page,
        "tax": render_tax_page,
        "investments": render_investments_page,
        "beneficiaries": render_beneficiaries_page,
        "consultations": render_consultations_page,
        "assistant": render_assistant_page,
        "notifications": render_notifications_page,
        "settings": render_settings_page,
    }
    renderers[page](components, user_id, t)


def end_session():
    st.session_state.user_id = None
    st.session_state.insights = []
    st.session_state.reminders_checked = False
    st.session_state.poller = None
    st.session_state.chat = []
    st.session_state.will_pdf = None


def handle_checkout_return(components: AppComponents, user_id: UUID):
    """Activate Pro when the payment page redirects back with ?checkout=success."""
    if st.query_params.get("checkout") != "success":
        return
    try:
        status = run_async(components.account(user_id).confirm_checkout())
    except (ValueError, EdgeFunctionError, StorageError) as e:
        st.error(f"Your payment could not be confirmed: {e}")
    else:
        if status.is_pro:
            st.success("⭐ Welcome to Pro! Your plan is active.")
        else:
            st.warning("Payment received. Your plan will be active in a moment.")
    del st.query_params["checkout"]


def render_pending_notices():
    # Set before a rerun by the registration wizard
    if st.session_state.flash:
        st.success(st.session_state.flash)
        st.session_state.flash = ""
    url = st.session_state.checkout_url
    error = st.session_state.checkout_error
    if url:
        st.link_button("⭐ Complete your Pro upgrade", url)
    elif error:
        st.warning(f"Checkout is unavailable right now: {error}")
    if url or error:
        st.session_state.checkout_url = None
        st.session_state.checkout_error = ""


def send_reminders(components: AppComponents, user_id: UUID):
    """Renewal and low-credit notifications, once per session."""
    if st.session_state.reminders_checked:
        return
    st.session_state.reminders_checked = True
    try:
        run_async(components.account(user_id).reminders(
            components.notifications(user_id), components.documents(user_id),
        ))
    except StorageError as e:
        st.sidebar.caption(f"Reminders are unavailable: {e}")


def toast_notifications(items):
    for n in items:
        st.toast(f"🔔 {n.title}")


@st.fragment(run_every=get_settings().app.notification_poll_seconds)
def poll_notifications():
    poller = st.session_state.poller
    if poller is None:
        return
    try:
        run_async(poller.poll_once())
    except StorageError as e:
        st.caption(f"Notifications are unavailable: {e}")


def watch_notifications(components: AppComponents, user_id: UUID):
    """Toast new notifications while the app is open, if in-app alerts are on."""
    if st.session_state.poller is None:
        settings = run_async(components.account(user_id).user_settings())
        if not settings.notifications.in_app:
            return
        poller = NotificationPoller(components.notifications(user_id), on_new=toast_notifications)
        # Existing notifications are already listed; only newer ones are toasted
        run_async(poller.prime())
        st.session_state.poller = poller
    poll_notifications()


# =============================================================================
# AUTH + REGISTRATION
# =============================================================================

def render_auth_page(components: AppComponents, t):
    st.title(t("common.welcome"))

    if st.session_state.draft is not None:
        render_registration_wizard(components, t)
        return

    flow = components.auth_flow()
    if flow is None:
        st.markdown("The backend is not configured. You can still try the app with a local demo account.")
        if st.button(f"🚀 {t('common.getStarted')}", type="primary"):
            st.session_state.draft = components.wizard().draft.model_dump()
            st.rerun()
        return

    sign_in_tab, sign_up_tab, reset_tab = st.tabs(
        [t("common.signIn"), t("common.signUp"), t("common.forgotPassword")]
    )

    with sign_in_tab:
        email = st.text_input(t("common.email"), key="signin_email")
        password = st.text_input(t("common.password"), type="password", key="signin_password")
        if st.button(t("common.signIn"), type="primary"):
            try:
                user = run_async(flow.sign_in(email, password))
                st.session_state.user_id = user.id
                st.session_state.user_email = user.email
                settings = run_async(components.account(user.id).user_settings())
                st.session_state.currency = settings.currency
                st.session_state.language = settings.language
                st.rerun()
            except AuthError as e:
                st.error(f"Sign in failed: {e}")

    with sign_up_tab:
        st.markdown("Create your account, then tell us about your finances.")
        if st.button(f"🚀 {t('common.getStarted')}", type="primary"):
            st.session_state.draft = components.wizard().draft.model_dump()
            st.rerun()

    with reset_tab:
        email = st.text_input(t("common.email"), key="reset_email")
        if st.button("Send reset link"):
            try:
                run_async(flow.reset_password(email))
                st.success("Password reset email sent!")
            except AuthError as e:
                st.error(str(e))


def render_registration_wizard(components: AppComponents, t):
    wizard = components.wizard(RegistrationDraft.model_validate(st.session_state.draft))

    st.progress(wizard.progress, text=f"Step {wizard.current_step} of 5: {wizard.step_name}")

    if wizard.current_step == 1:
        render_personal_info_step(wizard)
    elif wizard.current_step == 2:
        render_financial_details_step(wizard)
    elif wizard.current_step == 3:
        render_beneficiaries_step(wizard)
    elif wizard.current_step == 4:
        render_plan_step(wizard)
    else:
        render_summary_step(components, wizard, t)

    moved = False
    col1, col2, _ = st.columns([1, 1, 3])
    with col1:
        if wizard.current_step > 1 and st.button(f"⬅️ {t('registration.back')}"):
            wizard.prev_step()
            moved = True
    with col2:
        if wizard.current_step < 5 and st.button(f"{t('registration.next')} ➡️", type="primary"):
            try:
                run_async(wizard.next_step())
                moved = True
            except WizardStepError as e:
                st.markdown(f"""
                <div class="warning-box">
                    <h4>⚠️ Please Review</h4>
                    <p>{get_user_friendly_summary(e.result)}</p>
                </div>
                """, unsafe_allow_html=True)

    if st.session_state.draft is not None:
        st.session_state.draft = wizard.draft.model_dump()
    if moved:
        st.rerun()


def render_personal_info_step(wizard):
    info = wizard.draft.personal_info
    st.subheader(STEP_NAMES[1])

    country_codes = [c.code for c in COUNTRIES]
    col1, col2 = st.columns(2)
    with col1:
        full_name = st.text_input("Full name *", value=info.full_name)
        email = st.text_input("Email *", value=info.email)
        date_of_birth = st.date_input(
            "Date of birth *",
            value=info.date_of_birth,
            min_value=date(1900, 1, 1),
            max_value=date.today(),
        )
        country = st.selectbox(
            "Country *",
            options=country_codes,
            index=country_codes.index(info.country) if info.country in country_codes else 0,
            format_func=lambda code: next(c.name for c in COUNTRIES if c.code == code),
        )
        national_id = st.text_input(
            f"{national_id_label(country)} *",
            value=info.national_id,
            placeholder=national_id_placeholder(country),
        )
    with col2:
        phone = st.text_input("Phone *", value=info.phone)
        street = st.text_input("Street address *", value=info.address.street)
        city = st.text_input("City *", value=info.address.city)
        state = st.text_input("State/Province *", value=info.address.state)
        zip_code = st.text_input("ZIP/Postal code *", value=info.address.zip_code)

    wizard.update_personal_info(
        full_name=full_name,
        email=email,
        date_of_birth=date_of_birth,
        national_id=national_id,
        phone=phone,
        country=country,
        street=street,
        city=city,
        state=state,
        zip_code=zip_code,
    )


def _draft_table(items, columns):
    if items:
        st.table([{name: fn(item) for name, fn in columns.items()} for item in items])


def render_financial_details_step(wizard):
    st.subheader(STEP_NAMES[2])
    draft = wizard.draft

    with st.expander("💵 Income sources", expanded=True):
        _draft_table(draft.income_sources, {
            "Source": lambda i: i.source_type,
            "Amount": lambda i: format_amount(i.amount, i.currency),
            "Frequency": lambda i: label(i.frequency),
        })
        with st.form("wizard_income", clear_on_submit=True):
            source = st.text_input("Source (e.g. Salary)")
            amount = st.number_input("Amount", min_value=0.0, step=100.0)
            frequency = st.selectbox("Frequency", list(IncomeFrequency), format_func=label)
            if st.form_submit_button("Add income") and source:
                wizard.add("income_sources", IncomeSource(
                    source_type=source,
                    amount=Decimal(str(amount)).quantize(Decimal("0.01")),
                    currency=st.session_state.currency,
                    frequency=frequency,
                ))

    with st.expander("🏦 Assets"):
        _draft_table(draft.assets, {
            "Type": lambda a: label(a.type),
            "Institution": lambda a: a.institution_name,
            "Amount": lambda a: format_amount(a.amount, a.currency),
        })
        with st.form("wizard_asset", clear_on_submit=True):
            asset_type = st.selectbox("Type", list(AssetType), format_func=label)
            institution = st.text_input("Institution")
            amount = st.number_input("Amount", min_value=0.0, step=100.0, key="wizard_asset_amount")
            if st.form_submit_button("Add asset") and institution:
                wizard.add("assets", Asset(
                    type=asset_type,
                    institution_name=institution,
                    amount=Decimal(str(amount)).quantize(Decimal("0.01")),
                    currency=st.session_state.currency,
                ))

    with st.expander("💳 Debts"):
        _draft_table(draft.debts, {
            "Type": lambda d: label(d.debt_type),
            "Balance": lambda d: money(d.balance),
            "Monthly": lambda d: money(d.monthly_payment),
        })
        with st.form("wizard_debt", clear_on_submit=True):
            debt_type = st.selectbox("Type", list(DebtType), format_func=label)
            balance = st.number_input("Balance", min_value=0.0, step=100.0)
            rate = st.number_input("Interest rate (%)", min_value=0.0, max_value=100.0)
            payment = st.number_input("Monthly payment", min_value=0.0, step=10.0)
            if st.form_submit_button("Add debt"):
                wizard.add("debts", Debt(
                    debt_type=debt_type,
                    balance=Decimal(str(balance)).quantize(Decimal("0.01")),
                    interest_rate=Decimal(str(rate)),
                    monthly_payment=Decimal(str(payment)).quantize(Decimal("0.01")),
                ))

    with st.expander("🏖️ Retirement accounts"):
        _draft_table(draft.retirement_accounts, {
            "Type": lambda r: label(r.account_type),
            "Institution": lambda r: r.institution_name,
            "Balance": lambda r: money(r.balance),
        })
        with st.form("wizard_retirement", clear_on_submit=True):
            account_type = st.selectbox("Type", list(RetirementAccountType), format_func=label)
            institution = st.text_input("Institution")
            balance = st.number_input("Balance", min_value=0.0, step=100.0)
            contribution = st.number_input("Contribution", min_value=0.0, step=10.0)
            frequency = st.selectbox("Contribution frequency", list(IncomeFrequency), format_func=label)
            if st.form_submit_button("Add account") and institution:
                wizard.add("retirement_accounts", RetirementAccount(
                    account_type=account_type,
                    institution_name=institution,
                    balance=Decimal(str(balance)).quantize(Decimal("0.01")),
                    contribution_amount=Decimal(str(contribution)).quantize(Decimal("0.01")),
                    contribution_frequency=frequency,
                ))


def beneficiary_form(key: str) -> Beneficiary | None:
    with st.form(key, clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            full_name = st.text_input("Full name")
            relationship = st.selectbox("Relationship", list(RelationshipType), format_func=label)
            percentage = st.number_input("Percentage", min_value=1.0, max_value=100.0, value=100.0)
        with col2:
            email = st.text_input("Contact email")
            is_primary = st.checkbox("Primary beneficiary", value=True)
        if st.form_submit_button("Add beneficiary") and full_name:
            try:
                return Beneficiary(
                    full_name=full_name,
                    relationship=relationship,
                    percentage=Decimal(str(percentage)),
                    is_primary=is_primary,
                    contact_email=email or None,
                )
            except ValueError as e:
                st.error(str(e))
    return None


def render_beneficiaries_step(wizard):
    st.subheader(STEP_NAMES[3])
    draft = wizard.draft
    for b in list(draft.beneficiaries):
        col1, col2 = st.columns([5, 1])
        col1.markdown(f"**{b.full_name}** ({label(b.relationship)}) - {b.percentage}%")
        if col2.button("🗑️", key=f"wizard_remove_{b.id}"):
            wizard.remove("beneficiaries", b.id)
    if draft.beneficiaries:
        valid, total = validate_percentage_total(b.percentage for b in draft.beneficiaries)
        if not valid:
            st.warning(percentage_total_message(total))
    new = beneficiary_form("wizard_beneficiary")
    if new is not None:
        wizard.add("beneficiaries", new)


def render_plan_step(wizard):
    st.subheader(STEP_NAMES[4])
    currency = st.session_state.currency
    price, billed = plan_price(PlanType.PRO, currency)
    col1, col2 = st.columns(2)
    with col1:
        st.markdown("""
        <div class="info-box">
            <h4>Free</h4>
            <p>100 credits every month for AI-assisted features.</p>
        </div>
        """, unsafe_allow_html=True)
    with col2:
        st.markdown(f"""
        <div class="success-box">
            <h4>⭐ Pro - {format_amount(price, billed)}/month</h4>
            <p>Unlimited use of every feature.</p>
        </div>
        """, unsafe_allow_html=True)
    plan = st.radio(
        "Choose a plan",
        list(PlanType),
        index=list(PlanType).index(wizard.draft.selected_plan),
        format_func=label,
        horizontal=True,
    )
    wizard.select_plan(plan)


def render_summary_step(components: AppComponents, wizard, t):
    st.subheader(STEP_NAMES[5])
    draft = wizard.draft
    info = draft.personal_info
    st.markdown(f"**{info.full_name}** - {info.email}")
    st.markdown(f"{info.address.one_line()}")
    st.markdown(
        f"Income sources: {len(draft.income_sources)} · Assets: {len(draft.assets)} · "
        f"Debts: {len(draft.debts)} · Retirement accounts: {len(draft.retirement_accounts)} · "
        f"Beneficiaries: {len(draft.beneficiaries)}"
    )
    st.markdown(f"Plan: **{label(draft.selected_plan)}**")

    password = ""
    flow = components.auth_flow()
    if flow is not None:
        password = st.text_input(t("common.password"), type="password", key="wizard_password")

    if st.button(f"✅ {t('registration.submit')}", type="primary"):
        try:
            if flow is not None:
                user = run_async(flow.sign_up(info.email, password, info.full_name))
                user_id = user.id
            else:
                user_id = uuid4()
            outcome = run_async(wizard.complete(user_id, info.email))
        except WizardStepError as e:
            st.error(get_user_friendly_summary(e.result))
            return
        except (AuthError, StorageError) as e:
            st.error(f"Registration failed: {e}")
            return

        if flow is not None:
            st.session_state.flash = "Please check your email for the confirmation link."
        st.session_state.user_id = user_id
        st.session_state.user_email = info.email
        st.session_state.draft = None
        # Shown after the rerun by render_pending_notices
        st.session_state.checkout_url = outcome.checkout_url
        st.session_state.checkout_error = outcome.checkout_error or ""
        st.rerun()


# =============================================================================
# OVERVIEW
# =============================================================================

def render_overview_page(components: AppComponents, user_id: UUID, t):
    st.title(f"📊 {t('nav.overview')}")
    currency = st.session_state.currency
    flow = components.financial(user_id)
    snapshot, summary = run_async(flow.summary(currency, components.converter))

    col1, col2, col3, col4 = st.columns(4)
    col1.metric(t("dashboard.netWorth"), money(summary.net_worth))
    col2.metric(t("dashboard.monthlyIncome"), money(summary.monthly_income))
    col3.metric(t("dashboard.monthlySavings"), money(summary.monthly_savings))
    col4.metric(t("dashboard.totalDebts"), money(summary.total_debts))

    st.markdown(f"### {t('dashboard.readinessScore')}")
    st.progress(summary.readiness_score / 100, text=(
        f"{summary.readiness_score}/100 - {readiness_band(summary.readiness_score)}"
    ))
    st.caption(
        f"Savings rate {summary.savings_rate:.1f}% · Debt-to-income {summary.debt_to_income:.1f}%"
    )

    st.markdown(f"### 💡 {t('dashboard.insights')}")
    if credit_caption(components, user_id, "AI_INSIGHT") and st.button("Refresh insights"):
        with st.spinner("Generating insights..."):
            try:
                st.session_state.insights = run_async(
                    components.dashboard(user_id, st.session_state.language).insights(summary, currency)
                )
            except (InsufficientCreditsError, EdgeFunctionError) as e:
                st.warning(str(e))

    for insight in st.session_state.insights:
        icon = {"high": "🔴", "medium": "🟡", "low": "🟢"}[insight.priority.value]
        st.markdown(f"{icon} **{insight.title}**  \n{insight.description}")

    pdf = run_async(components.reports(user_id).overview(
        snapshot, summary, currency, st.session_state.insights
    ))
    st.download_button(
        f"📥 {t('dashboard.downloadReport')}",
        data=pdf,
        file_name=f"financial-overview-{date.today().isoformat()}.pdf",
        mime="application/pdf",
    )


# =============================================================================
# FINANCIAL MANAGEMENT
# =============================================================================

def _record_list(components: AppComponents, user_id: UUID, record_type, describe):
    flow = components.financial(user_id)
    records = run_async(flow.list_records(record_type))
    if not records:
        st.info("Nothing here yet.")
    for record in records:
        col1, col2 = st.columns([6, 1])
        col1.markdown(describe(record))
        if col2.button("🗑️", key=f"delete_{record.id}"):
            run_async(flow.delete(record_type, record.id))
            st.rerun()


def _save(components: AppComponents, user_id: UUID, build):
    try:
        run_async(components.financial(user_id).create(build()))
        st.success("Saved")
        st.rerun()
    except (ValueError, StorageError) as e:
        st.error(f"Failed to save: {e}")


def render_financial_page(components: AppComponents, user_id: UUID, t):
    st.title(f"💼 {t('nav.financialManagement')}")
    currency = st.session_state.currency
    assets_tab, debts_tab, income_tab, retirement_tab = st.tabs(
        ["Assets", "Debts", "Income", "Retirement accounts"]
    )

    with assets_tab:
        _record_list(components, user_id, Asset, lambda a: (
            f"**{a.institution_name}** · {label(a.type)} · {format_amount(a.amount, a.currency)}"
        ))
        with st.form("add_asset", clear_on_submit=True):
            asset_type = st.selectbox("Type", list(AssetType), format_func=label)
            institution = st.text_input("Institution")
            amount = st.number_input("Amount", min_value=0.0, step=100.0)
            account_number = st.text_input("Account number (last 4)")
            if st.form_submit_button("Add asset"):
                _save(components, user_id, lambda: Asset(
                    type=asset_type,
                    institution_name=institution,
                    amount=Decimal(str(amount)).quantize(Decimal("0.01")),
                    currency=currency,
                    account_number=account_number or None,
                ))

    with debts_tab:
        _record_list(components, user_id, Debt, lambda d: (
            f"**{label(d.debt_type)}** · {money(d.balance)} "
            f"at {d.interest_rate}% · {money(d.monthly_payment)}/month"
        ))
        with st.form("add_debt", clear_on_submit=True):
            debt_type = st.selectbox("Type", list(DebtType), format_func=label)
            balance = st.number_input("Balance", min_value=0.0, step=100.0)
            rate = st.number_input("Interest rate (%)", min_value=0.0, max_value=100.0)
            payment = st.number_input("Monthly payment", min_value=0.0, step=10.0)
            due = st.date_input("Next due date", value=None)
            if st.form_submit_button("Add debt"):
                _save(components, user_id, lambda: Debt(
                    debt_type=debt_type,
                    balance=Decimal(str(balance)).quantize(Decimal("0.01")),
                    interest_rate=Decimal(str(rate)),
                    monthly_payment=Decimal(str(payment)).quantize(Decimal("0.01")),
                    due_date=due,
                ))

    with income_tab:
        _record_list(components, user_id, IncomeSource, lambda i: (
            f"**{i.source_type}** · {format_amount(i.amount, i.currency)} {label(i.frequency)}"
        ))
        with st.form("add_income", clear_on_submit=True):
            source = st.text_input("Source")
            amount = st.number_input("Amount", min_value=0.0, step=100.0)
            frequency = st.selectbox("Frequency", list(IncomeFrequency), format_func=label)
            start = st.date_input("Start date", value=None)
            end = st.date_input("End date", value=None)
            if st.form_submit_button("Add income"):
                _save(components, user_id, lambda: IncomeSource(
                    source_type=source,
                    amount=Decimal(str(amount)).quantize(Decimal("0.01")),
                    currency=currency,
                    frequency=frequency,
                    start_date=start,
                    end_date=end,
                ))

    with retirement_tab:
        _record_list(components, user_id, RetirementAccount, lambda r: (
            f"**{r.institution_name}** · {label(r.account_type)} · {money(r.balance)} · "
            f"{money(r.contribution_amount)} {label(r.contribution_frequency)}"
        ))
        with st.form("add_retirement", clear_on_submit=True):
            account_type = st.selectbox("Type", list(RetirementAccountType), format_func=label)
            institution = st.text_input("Institution")
            balance = st.number_input("Balance", min_value=0.0, step=100.0)
            contribution = st.number_input("Contribution", min_value=0.0, step=10.0)
            frequency = st.selectbox("Contribution frequency", list(IncomeFrequency), format_func=label)
            if st.form_submit_button("Add account"):
                _save(components, user_id, lambda: RetirementAccount(
                    account_type=account_type,
                    institution_name=institution,
                    balance=Decimal(str(balance)).quantize(Decimal("0.01")),
                    contribution_amount=Decimal(str(contribution)).quantize(Decimal("0.01")),
                    contribution_frequency=frequency,
                ))


# =============================================================================
# DOCUMENTS
# =============================================================================

def render_budget_page(components: AppComponents, user_id: UUID, t):
    st.title("💵 Budget")
    _, summary = run_async(components.financial(user_id).summary(
        st.session_state.currency, components.converter
    ))
    income = st.number_input(
        t("dashboard.monthlyIncome"), min_value=0.0,
        value=float(summary.monthly_income), step=100.0,
    )

    spent, custom = {}, {}
    with st.form("budget"):
        st.caption("Leave a budget at 0 to use the recommended share of income.")
        for key, name in CATEGORY_NAMES.items():
            col1, col2 = st.columns(2)
            spent[key] = Decimal(str(col1.number_input(
                f"{name} spent", min_value=0.0, step=10.0, key=f"spent_{key}",
            )))
            custom[key] = Decimal(str(col2.number_input(
                f"{name} budget", min_value=0.0, step=10.0, key=f"budget_{key}",
            )))
        st.form_submit_button("Update budget")

    plan = components.planning(user_id).budget(Decimal(str(income)), spent, custom)

    col1, col2, col3 = st.columns(3)
    col1.metric("Budgeted", money(plan.total_budgeted))
    col2.metric("Spent", money(plan.total_spent))
    col3.metric("Unallocated", money(plan.unallocated))
    if plan.unallocated < 0:
        st.warning("Your budgets add up to more than your income.")

    icons = {"ok": "🟢", "warning": "🟡", "over": "🔴"}
    for category in plan.categories:
        st.markdown(
            f"{icons[category.status]} **{category.name}** · {money(category.spent)} of "
            f"{money(category.budgeted)} ({category.utilization:.0f}%) · "
            f"recommended {category.recommended_percentage}% of income"
        )
        st.progress(min(category.utilization, 100) / 100)
    for category in plan.overspent:
        st.error(f"{category.name} is over budget by {money(category.spent - category.budgeted)}")


def render_documents_page(components: AppComponents, user_id: UUID, t):
    st.title(f"📄 {t('nav.documentsHandling')}")
    flow = components.documents(user_id)

    renewals = run_async(flow.upcoming_renewals())
    if renewals:
        st.markdown("### ⏰ Upcoming renewals")
        for d in renewals:
            st.markdown(f"- **{d.name}** on {d.renewal_date.isoformat()}")
        if st.button("Add renewal reminders to notifications"):
            created = run_async(flow.remind_renewals(components.notifications(user_id)))
            st.success(f"{len(created)} reminder(s) added")

    with st.form("upload_document", clear_on_submit=True):
        uploaded = st.file_uploader(
            "Choose a document",
            type=["pdf", "jpg", "jpeg", "png", "webp", "doc", "docx", "txt"],
        )
        document_type = st.selectbox("Document type", list(DocumentType), format_func=label)
        renewal = st.date_input("Renewal date (optional)", value=None)
        tags = st.text_input("Tags (comma separated)")
        submitted = st.form_submit_button("📤 Upload", type="primary")

    if submitted and uploaded is not None:
        with st.spinner("Uploading and reading your document..."):
            try:
                document, result, ocr_message = run_async(flow.upload(
                    uploaded.getvalue(),
                    uploaded.name,
                    uploaded.type or "application/octet-stream",
                    document_type=document_type,
                    renewal_date=renewal,
                    tags=[tag.strip() for tag in tags.split(",") if tag.strip()],
                ))
            except (ValueError, StorageError) as e:
                st.error(f"Upload failed: {e}")
                document, result, ocr_message = None, None, ""
        if result is not None and document is None:
            st.error(get_user_friendly_summary(result))
        elif document is not None:
            st.success(f"✅ {document.name} uploaded")
            if result.warnings:
                st.warning(get_user_friendly_summary(result))
            if ocr_message:
                st.warning(ocr_message)

    st.markdown("### Your documents")
    col1, col2, col3 = st.columns(3)
    type_filter = col1.selectbox(
        "Type", [None] + list(DocumentType),
        format_func=lambda x: "All types" if x is None else label(x),
    )
    tag_filter = col2.text_input("Tag")
    name_filter = col3.text_input("Name contains")
    documents = run_async(flow.search(type_filter, tag_filter, name_filter))

    if not documents:
        st.info("No documents yet.")
    for document in documents:
        with st.expander(f"{document.name} · {label(document.type)}"):
            st.markdown(f"[Open file]({document.file_url}) · {document.size_bytes / 1024:.0f} KB")
            if document.tags:
                st.caption("Tags: " + ", ".join(document.tags))
            if document.renewal_date:
                detected = " (read from the document)" if document.metadata.get("renewal_date_detected") else ""
                st.caption(f"Renews {document.renewal_date.isoformat()}{detected}")
            if document.ocr_text:
                st.text_area("Extracted text", document.ocr_text, height=150, disabled=True,
                             key=f"ocr_{document.id}")
            if st.button(f"🗑️ {t('common.delete')}", key=f"delete_doc_{document.id}"):
                run_async(flow.delete(document.id))
                st.rerun()


# =============================================================================
# PLANNING
# =============================================================================

def render_retirement_page(components: AppComponents, user_id: UUID, t):
    st.title(f"🧮 {t('nav.retirementCalculator')}")
    _, summary = run_async(components.financial(user_id).summary(
        st.session_state.currency, components.converter
    ))

    col1, col2 = st.columns(2)
    with col1:
        current_age = st.number_input("Current age", 16, 100, value=summary.age)
        retirement_age = st.number_input("Target retirement age", 30, 100, value=max(65, summary.age))
        desired = st.number_input("Desired monthly income", min_value=0.0, value=5000.0, step=100.0)
        savings = st.number_input(
            "Current savings", min_value=0.0,
            value=float(summary.total_retirement), step=1000.0,
        )
    with col2:
        inflation = st.slider("Inflation (%)", 0.0, 10.0, 3.0, 0.1)
        expected_return = st.slider("Expected return (%)", 0.0, 15.0, 7.0, 0.1)
        risk = st.selectbox("Risk tolerance", list(RiskTolerance), index=1, format_func=label)
        region = st.selectbox("Region", ["US", "CA", "UK", "AU", "EU"])

    if credit_caption(components, user_id, "RETIREMENT_CALCULATION") and st.button("Calculate", type="primary"):
        try:
            goals = RetirementGoals(
                current_age=int(current_age),
                target_retirement_age=int(retirement_age),
                desired_monthly_income=desired,
                current_savings=savings,
                inflation_rate=inflation,
                expected_return=expected_return,
                risk_tolerance=risk,
                region=region,
            )
            projection = run_async(components.planning(user_id).retirement(goals))
        except (ValueError, InsufficientCreditsError, EdgeFunctionError) as e:
            st.error(str(e))
            return

        col1, col2, col3 = st.columns(3)
        col1.metric("Total needed", money(projection.total_needed))
        col2.metric("Savings gap", money(projection.savings_gap))
        col3.metric("Monthly contribution", money(projection.monthly_contribution_needed))
        st.metric("Success probability", f"{projection.success_probability:.0f}%")
        st.line_chart(
            {p.age: p.portfolio_value for p in projection.yearly_projections},
        )
        mc = projection.monte_carlo
        st.caption(
            f"Monte Carlo: 10th percentile {money(mc.percentile10)} · "
            f"median {money(mc.percentile50)} · 90th percentile {money(mc.percentile90)}"
        )


def render_tax_page(components: AppComponents, user_id: UUID, t):
    st.title(f"🧾 {t('nav.taxEstimator')}")
    col1, col2 = st.columns(2)
    with col1:
        income = st.number_input("Annual income", min_value=0.0, value=75000.0, step=1000.0)
        status = st.selectbox("Filing status", list(FilingStatus), format_func=lambda s: {
            FilingStatus.SINGLE: "Single",
            FilingStatus.MARRIED_JOINT: "Married filing jointly",
            FilingStatus.MARRIED_SEPARATE: "Married filing separately",
            FilingStatus.HEAD_OF_HOUSEHOLD: "Head of household",
        }[s])
        state = st.text_input("State", value="CA", max_chars=2)
    with col2:
        contributions = st.number_input("Retirement contributions", min_value=0.0, step=500.0)
        deductions = st.number_input("Itemised deductions", min_value=0.0, step=500.0)

    if credit_caption(components, user_id, "TAX_ESTIMATION") and st.button("Estimate", type="primary"):
        try:
            estimate = run_async(components.planning(user_id).taxes(TaxInput(
                annual_income=income,
                filing_status=status,
                state=state.upper(),
                retirement_contributions=contributions,
                other_deductions=deductions,
            )))
        except (ValueError, InsufficientCreditsError, EdgeFunctionError) as e:
            st.error(str(e))
            return

        col1, col2, col3 = st.columns(3)
        col1.metric("Federal tax", money(estimate.federal_tax))
        col2.metric("State tax", money(estimate.state_tax))
        col3.metric("FICA", money(estimate.fica_tax))
        col1.metric("Total tax", money(estimate.total_tax))
        col2.metric("Effective rate", f"{estimate.effective_rate:.1f}%")
        col3.metric("Marginal rate", f"{estimate.marginal_rate:.0f}%")
        st.metric("Take-home pay", money(estimate.take_home))
        for strategy in estimate.strategies:
            potential = (
                f"saves about {money(strategy.potential_savings)}"
                if strategy.potential_savings is not None
                else strategy.potential_label
            )
            st.markdown(f"💡 **{strategy.title}**: {strategy.description} ({potential})")


def render_investments_page(components: AppComponents, user_id: UUID, t):
    st.title(f"📈 {t('nav.investmentSettings')}")
    flow = components.financial(user_id)
    allocations = run_async(flow.list_records(PortfolioAllocation))

    risk_level = st.slider("Risk level", 1, 5, 3)
    st.caption("Suggested targets: " + ", ".join(
        f"{k} {v}%" for k, v in target_profile(risk_level).items()
    ))

    for allocation in allocations:
        col1, col2 = st.columns([6, 1])
        col1.markdown(
            f"**{allocation.asset_class}** · target {allocation.target_percentage}% · "
            f"current {allocation.current_percentage}%"
        )
        if col2.button("🗑️", key=f"delete_alloc_{allocation.id}"):
            run_async(flow.delete(PortfolioAllocation, allocation.id))
            st.rerun()

    if allocations:
        valid, total = validate_percentage_total(a.target_percentage for a in allocations)
        if not valid:
            st.warning(percentage_total_message(total))

    with st.form("add_allocation", clear_on_submit=True):
        asset_class = st.text_input("Asset class")
        target = st.number_input("Target %", 0.0, 100.0)
        current = st.number_input("Current %", 0.0, 100.0)
        threshold = st.number_input("Rebalance threshold %", 0.0, 100.0, value=5.0)
        if st.form_submit_button("Add allocation"):
            _save(components, user_id, lambda: PortfolioAllocation(
                asset_class=asset_class,
                target_percentage=Decimal(str(target)),
                current_percentage=Decimal(str(current)),
                rebalance_threshold=Decimal(str(threshold)),
            ))

    if allocations and credit_caption(components, user_id, "PORTFOLIO_ANALYSIS") \
            and st.button("Analyze portfolio", type="primary"):
        try:
            recommendations = run_async(components.planning(user_id).rebalance(allocations))
        except (InsufficientCreditsError, EdgeFunctionError) as e:
            st.error(str(e))
            return
        if not recommendations:
            st.success("✅ Your portfolio is within its rebalancing thresholds.")
        for r in recommendations:
            st.markdown(f"- **{r.action.title()} {r.asset_class}** ({r.priority}): {r.rationale}")

    st.markdown("---")
    st.markdown("### 🎯 Recommendations for your risk profile")
    portfolio_value = st.number_input("Portfolio value", min_value=0.0, value=100000.0, step=1000.0)
    candidates = st.multiselect(
        "Also consider", list(ASSET_CLASS_CATEGORIES),
        default=[c for c in ASSET_CLASS_CATEGORIES if c not in {a.asset_class for a in allocations}][:3],
    )
    if credit_caption(components, user_id, "INVESTMENT_RECOMMENDATION") \
            and st.button("Get recommendations"):
        try:
            analysis = run_async(components.planning(user_id).investments(
                allocations, risk_level, portfolio_value, tuple(candidates),
            ))
        except (InsufficientCreditsError, EdgeFunctionError) as e:
            st.error(str(e))
            return

        metrics = analysis.current_metrics
        col1, col2, col3, col4 = st.columns(4)
        col1.metric("Expected return", f"{metrics.expected_return:.1f}%")
        col2.metric("Volatility", f"{metrics.volatility:.1f}%")
        col3.metric("Sharpe ratio", f"{metrics.sharpe_ratio:.2f}")
        col4.metric("Risk level", metrics.risk_level)
        if not analysis.recommendations:
            st.success("✅ Your allocation already fits your risk profile.")
        for r in analysis.recommendations:
            st.markdown(
                f"- **{r.action.title()} {r.asset_class}** to {r.target_percentage:.0f}% "
                f"({r.priority}): {r.rationale}"
            )
        st.caption(
            f"Potential return improvement {analysis.return_improvement:.2f}% · "
            f"risk reduction {analysis.risk_reduction:.2f}% · {analysis.efficiency_gain}"
        )


# =============================================================================
# BENEFICIARIES + WILL
# =============================================================================

def render_beneficiaries_page(components: AppComponents, user_id: UUID, t):
    st.title(f"👪 {t('nav.beneficiaries')}")
    flow = components.financial(user_id)
    beneficiaries = run_async(flow.list_records(Beneficiary))

    _record_list(components, user_id, Beneficiary, lambda b: (
        f"**{b.full_name}** ({label(b.relationship)}) · {b.percentage}% · "
        f"{'Primary' if b.is_primary else 'Contingent'}"
    ))
    if beneficiaries:
        valid, total = validate_percentage_total(b.percentage for b in beneficiaries)
        if not valid:
            st.warning(percentage_total_message(total))

    new = beneficiary_form("add_beneficiary")
    if new is not None:
        _save(components, user_id, lambda: new)

    st.markdown("---")
    st.markdown("### 📜 Will generator")
    profile = run_async(flow.get_profile())
    jurisdiction = st.selectbox(
        "Jurisdiction", list(JURISDICTIONS), format_func=JURISDICTIONS.get,
    )
    st.caption(witness_requirements_for(jurisdiction))
    col1, col2 = st.columns(2)
    with col1:
        testator_name = st.text_input("Your full name", value=profile.full_name if profile else "")
        testator_address = st.text_area(
            "Your address", value=profile.address.one_line() if profile else "",
        )
        executor_name = st.text_input("Executor name")
        executor_email = st.text_input("Executor email")
    with col2:
        specific_bequests = st.text_area("Specific bequests")
        residuary_clause = st.text_area("Residuary instructions")
        guardianship_clause = st.text_area("Guardianship (if you have minor children)")

    if credit_caption(components, user_id, "WILL_GENERATION") and st.button("Generate will", type="primary"):
        will = WillData(
            jurisdiction=jurisdiction,
            testator_name=testator_name,
            testator_address=testator_address,
            executor_name=executor_name,
            executor_email=executor_email,
            specific_bequests=specific_bequests,
            residuary_clause=residuary_clause,
            guardianship_clause=guardianship_clause,
            witness_requirements=witness_requirements_for(jurisdiction),
        )
        try:
            pdf = run_async(components.reports(user_id).will(will, beneficiaries))
        except InvalidWillError as e:
            st.error(get_user_friendly_summary(e.result))
            return
        except (InsufficientCreditsError, EdgeFunctionError) as e:
            st.error(str(e))
            return
        st.session_state.will_pdf = (will, pdf)

    if st.session_state.will_pdf is None:
        return
    will, pdf = st.session_state.will_pdf
    st.download_button(
        "📥 Download will",
        data=pdf,
        file_name=f"will-{will.testator_name.lower().replace(' ', '-')}.pdf",
        mime="application/pdf",
    )
    st.info("This is a draft. Have it reviewed and witnessed as your jurisdiction requires.")
    if credit_caption(components, user_id, "DOCUMENT_GENERATION") \
            and st.button("🗄️ Save to my documents"):
        try:
            document = run_async(components.reports(user_id).save_will(will, beneficiaries, pdf))
        except (ValueError, InsufficientCreditsError, EdgeFunctionError, StorageError) as e:
            st.error(str(e))
            return
        st.session_state.will_pdf = None
        st.success(f"✅ {document.name} saved to your documents")


# =============================================================================
# CONSULTATIONS
# =============================================================================

def render_consultations_page(components: AppComponents, user_id: UUID, t):
    st.title(f"🗓️ {t('nav.consultations')}")
    flow = components.financial(user_id)
    consultations = run_async(flow.list_records(Consultation))

    for c in consultations:
        col1, col2 = st.columns([5, 2])
        col1.markdown(
            f"**{c.scheduled_at:%Y-%m-%d %H:%M}** · {label(c.status)} · {c.notes or '-'}"
        )
        if c.status == ConsultationStatus.SCHEDULED and col2.button("Cancel", key=f"cancel_{c.id}"):
            run_async(flow.update(c, status=ConsultationStatus.CANCELLED))
            st.rerun()

    with st.form("book_consultation", clear_on_submit=True):
        day = st.date_input("Date", min_value=date.today())
        at = st.time_input("Time", value=time(10, 0))
        notes = st.text_area("Notes")
        if st.form_submit_button("Book consultation"):
            _save(components, user_id, lambda: Consultation(
                scheduled_at=datetime.combine(day, at),
                notes=notes or None,
            ))


def render_assistant_page(components: AppComponents, user_id: UUID, t):
    st.title("💬 Assistant")
    assistant = components.assistant(user_id)

    st.markdown("### Consultation help")
    if not st.session_state.chat:
        st.session_state.chat = [("assistant", GREETING)]
    for role, text in st.session_state.chat:
        with st.chat_message(role):
            st.markdown(text)

    credit_caption(components, user_id, "AI_CONSULTATION")
    quick = st.selectbox("Quick questions", [""] + QUICK_QUESTIONS)
    message = st.chat_input("Ask about your consultation") or (quick if st.button("Ask") else None)
    if message:
        try:
            reply = run_async(assistant.consultation(message))
        except (ValueError, InsufficientCreditsError, EdgeFunctionError) as e:
            st.error(str(e))
        else:
            st.session_state.chat.extend([("user", message), ("assistant", reply)])
            st.rerun()

    st.markdown("---")
    st.markdown("### Personal financial advice")
    question = st.text_area("Your question", max_chars=1000)
    if credit_caption(components, user_id, "FINANCIAL_ADVICE") and st.button("Get advice", type="primary"):
        currency = st.session_state.currency
        _, summary = run_async(components.financial(user_id).summary(currency, components.converter))
        with st.spinner("Thinking..."):
            try:
                answer, source = run_async(assistant.advice(question, summary, currency))
            except (ValueError, InsufficientCreditsError, EdgeFunctionError) as e:
                st.error(str(e))
                return
        st.markdown(answer)
        if source == SOURCE_RULES:
            st.caption("The AI advisor is unavailable; this advice comes from your figures.")
        st.caption("General guidance only, not regulated financial advice.")


# =============================================================================
# NOTIFICATIONS
# =============================================================================

def render_notifications_page(components: AppComponents, user_id: UUID, t):
    st.title(f"🔔 {t('nav.notifications')}")
    center = components.notifications(user_id)
    notifications = run_async(center.recent())

    col1, col2, _ = st.columns([1, 1, 3])
    if col1.button("Mark all read"):
        run_async(center.mark_all_read())
        st.rerun()
    if col2.button("Clear all"):
        run_async(center.clear())
        st.rerun()

    if not notifications:
        st.info("You're all caught up.")
    icons = {"info": "ℹ️", "success": "✅", "warning": "⚠️", "error": "❌"}
    for n in notifications:
        col1, col2 = st.columns([6, 1])
        weight = "**" if not n.read else ""
        col1.markdown(
            f"{icons[n.type.value]} {weight}{n.title}{weight}  \n{n.message}  \n"
            f"<small>{n.created_at:%Y-%m-%d %H:%M}</small>",
            unsafe_allow_html=True,
        )
        if not n.read and col2.button("Read", key=f"read_{n.id}"):
            run_async(center.mark_read(n.id))
            st.rerun()


# =============================================================================
# PROFILE + SETTINGS
# =============================================================================

def render_settings_page(components: AppComponents, user_id: UUID, t):
    st.title(f"⚙️ {t('nav.profileSettings')}")
    account = components.account(user_id)
    settings = run_async(account.user_settings())
    status = run_async(account.status())

    st.markdown("### Subscription")
    if status.is_pro:
        st.success("⭐ Pro plan - unlimited access")
        if st.button("Switch to the free plan"):
            run_async(account.downgrade())
            st.rerun()
    else:
        st.markdown(
            f"Free plan · {status.remaining_credits} of {status.available_credits} credits left"
            + (f" · resets {status.reset_date.isoformat()}" if status.reset_date else "")
        )
        if st.button(f"⭐ {t('credits.upgrade')}", type="primary"):
            try:
                url = run_async(account.upgrade(st.session_state.currency))
                st.link_button("Continue to checkout", url)
            except (ValueError, EdgeFunctionError) as e:
                st.error(str(e))

    with st.expander("What do credits pay for?"):
        for op in CREDIT_OPERATIONS.values():
            st.markdown(f"- **{op.feature}** ({op.cost}): {op.description}")

    st.markdown("### Preferences")
    with st.form("preferences"):
        codes = [c.code for c in SUPPORTED_CURRENCIES]
        currency = st.selectbox(
            t("common.currency"), codes,
            index=codes.index(settings.currency) if settings.currency in codes else 0,
        )
        language = st.selectbox(
            t("common.language"), list(SUPPORTED_LANGUAGES),
            index=list(SUPPORTED_LANGUAGES).index(settings.language)
            if settings.language in SUPPORTED_LANGUAGES else 0,
            format_func=lambda code: SUPPORTED_LANGUAGES[code],
        )
        renewal_alerts = st.checkbox(
            "Document renewal reminders", value=settings.notifications.document_renewals,
        )
        low_credit_alerts = st.checkbox(
            "Low credit warnings", value=settings.notifications.low_credits,
        )
        in_app_alerts = st.checkbox(
            "Show new notifications while the app is open", value=settings.notifications.in_app,
        )
        if st.form_submit_button(t("common.save")):
            notifications = settings.notifications.model_copy(update={
                "document_renewals": renewal_alerts,
                "low_credits": low_credit_alerts,
                "in_app": in_app_alerts,
            })
            run_async(account.update_settings(
                currency=currency,
                language=language,
                notifications=notifications.model_dump(),
            ))
            st.session_state.currency = currency
            st.session_state.language = language
            st.session_state.poller = None
            st.success("Preferences saved")

    st.markdown("### Connection Status")
    service_status = validate_all_settings()
    services = [
        ("Supabase (Backend)", "supabase"),
        ("Mindee (OCR)", "mindee"),
        ("Gemini (AI)", "gemini"),
    ]
    for name, key in services:
        if service_status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = service_status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("### Recent activity")
    events = run_async(components.audit_logger.history(user_id, limit=10))
    for event in events:
        st.caption(f"{event.timestamp:%Y-%m-%d %H:%M} · {event.description}")

    render_data_section(components, user_id)


def render_data_section(components: AppComponents, user_id: UUID):
    st.markdown("### Your data")
    flow = components.data_management(user_id)

    sections = st.multiselect("Include", EXPORT_SECTIONS, default=EXPORT_SECTIONS, format_func=label)
    if sections and st.button("📦 Prepare export"):
        export = run_async(flow.export_data(sections))
        st.download_button(
            "📥 Download my data (JSON)",
            data=json.dumps(export, indent=2),
            file_name=f"secure-retire-export-{date.today().isoformat()}.json",
            mime="application/json",
        )

    with st.expander("⚠️ Delete my account"):
        st.warning(
            "This permanently removes your records, documents, settings and credits. "
            "It cannot be undone."
        )
        confirm = st.text_input('Type "DELETE" to confirm')
        if st.button("Delete everything", disabled=confirm != "DELETE"):
            try:
                run_async(flow.delete_account())
            except StorageError as e:
                st.error(f"Deletion failed: {e}")
                return
            auth = components.auth_flow()
            if auth is not None:
                run_async(auth.sign_out(user_id))
            end_session()
            st.rerun()


if __name__ == "__main__":
    main()
