"""
Static UI string catalogs.

Keys are dotted paths ("nav.overview"). English is complete; the other
languages cover navigation and common controls, and anything missing
falls back to English.
"""

SUPPORTED_LANGUAGES: dict[str, str] = {
    "en": "English",
    "si": "සිංහල",
    "ta": "தமிழ்",
    "zh": "中文",
    "es": "Español",
    "ja": "日本語",
}

# Locale used for number and currency formatting per UI language
BABEL_LOCALES: dict[str, str] = {
    "en": "en_US",
    "si": "si_LK",
    "ta": "ta_LK",
    "zh": "zh_CN",
    "es": "es_ES",
    "ja": "ja_JP",
}

CATALOGS: dict[str, dict] = {
    "en": {
        "common": {
            "welcome": "Welcome to Secure Retire",
            "getStarted": "Get Started",
            "currency": "Currency",
            "language": "Language",
            "selectLanguage": "Select language",
            "email": "Email",
            "password": "Password",
            "signIn": "Sign In",
            "signUp": "Sign Up",
            "forgotPassword": "Forgot Password?",
            "loading": "Loading...",
            "save": "Save",
            "cancel": "Cancel",
            "delete": "Delete",
            "edit": "Edit",
            "close": "Close",
        },
        "nav": {
            "signout": "Sign Out",
            "overview": "Overview",
            "financialManagement": "Financial Management",
            "documentsHandling": "Documents Handling",
            "retirementCalculator": "Retirement Calculator",
            "taxEstimator": "Tax Estimator",
            "investmentSettings": "Investment Settings",
            "beneficiaries": "Beneficiaries",
            "consultations": "Consultations",
            "notifications": "Notifications",
            "profileSettings": "Profile Settings",
        },
        "dashboard": {
            "netWorth": "Net Worth",
            "monthlyIncome": "Monthly Income",
            "monthlySavings": "Monthly Savings",
            "totalDebts": "Total Debts",
            "readinessScore": "Retirement Readiness",
            "insights": "AI Insights",
            "downloadReport": "Download Report",
        },
        "credits": {
            "unlimited": "Unlimited access",
            "noCredits": "No credits remaining. Upgrade to Pro for unlimited access.",
            "low": "You are running low on credits",
            "remaining": "Credits remaining",
            "upgrade": "Upgrade to Pro",
        },
        "registration": {
            "step1": "Personal Information",
            "step2": "Financial Details",
            "step3": "Beneficiaries",
            "step4": "Pricing Plan",
            "step5": "Summary",
            "next": "Next",
            "back": "Back",
            "submit": "Complete Registration",
        },
    },
    "si": {
        "common": {
            "welcome": "Secure Retire වෙත ආයුබෝවන්",
            "getStarted": "අරඹන්න",
            "currency": "මුදල්",
            "language": "භාෂාව",
            "selectLanguage": "භාෂාව තෝරන්න",
            "email": "ඊමේල්",
            "password": "මුරපදය",
            "signIn": "ඇතුල් වන්න",
            "signUp": "ලියාපදිංචි වන්න",
            "forgotPassword": "මුරපදය අමතකද?",
            "loading": "පූරණය වෙමින්...",
            "save": "සුරකින්න",
            "cancel": "අවලංගු කරන්න",
            "delete": "මකන්න",
            "edit": "සංස්කරණය කරන්න",
            "close": "වසන්න",
        },
        "nav": {
            "signout": "පිටවන්න",
            "overview": "දළ විශ්ලේෂණය",
            "financialManagement": "මූල්‍ය කළමනාකරණය",
            "documentsHandling": "ලේඛන කළමනාකරණය",
            "retirementCalculator": "විශ්‍රාම ගණකය",
            "investmentSettings": "ආයෝජන සැකසුම්",
            "beneficiaries": "ප්‍රතිලාභීන්",
            "consultations": "උපදේශන",
            "profileSettings": "පැතිකඩ සැකසුම්",
        },
    },
    "ta": {
        "common": {
            "welcome": "Secure Retire க்கு வரவேற்கிறோம்",
            "getStarted": "தொடங்குங்கள்",
            "currency": "நாணயம்",
            "language": "மொழி",
            "selectLanguage": "மொழியைத் தேர்ந்தெடுக்கவும்",
            "email": "மின்னஞ்சல்",
            "password": "கடவுச்சொல்",
            "signIn": "உள்நுழைக",
            "signUp": "பதிவுசெய்க",
            "forgotPassword": "கடவுச்சொல் மறந்துவிட்டதா?",
            "loading": "ஏற்றுகிறது...",
            "save": "சேமிக்கவும்",
            "cancel": "ரத்துசெய்",
            "delete": "நீக்கு",
            "edit": "திருத்து",
            "close": "மூடு",
        },
        "nav": {
            "signout": "வெளியேறு",
            "overview": "மேலோட்டம்",
            "financialManagement": "நிதி மேலாண்மை",
            "documentsHandling": "ஆவண மேலாண்மை",
            "retirementCalculator": "ஓய்வூதிய கணிப்பான்",
            "investmentSettings": "முதலீட்டு அமைப்புகள்",
            "beneficiaries": "பயனாளிகள்",
            "consultations": "ஆலோசனைகள்",
            "profileSettings": "சுயவிவர அமைப்புகள்",
        },
    },
    "es": {
        "common": {
            "welcome": "Bienvenido a Secure Retire",
            "getStarted": "Comenzar",
            "currency": "Moneda",
            "language": "Idioma",
            "selectLanguage": "Seleccionar idioma",
            "email": "Correo electrónico",
            "password": "Contraseña",
            "signIn": "Iniciar sesión",
            "signUp": "Registrarse",
            "forgotPassword": "¿Olvidaste tu contraseña?",
            "loading": "Cargando...",
            "save": "Guardar",
            "cancel": "Cancelar",
            "delete": "Eliminar",
            "edit": "Editar",
            "close": "Cerrar",
        },
        "nav": {
            "signout": "Cerrar Sesión",
            "overview": "Resumen",
            "financialManagement": "Gestión Financiera",
            "documentsHandling": "Manejo de Documentos",
            "retirementCalculator": "Calculadora de Jubilación",
            "investmentSettings": "Configuración de Inversiones",
            "beneficiaries": "Beneficiarios",
            "consultations": "Consultas",
            "profileSettings": "Configuración de Perfil",
        },
    },
    "zh": {
        "common": {
            "welcome": "欢迎来到安全退休",
            "getStarted": "开始使用",
            "currency": "货币",
            "language": "语言",
            "selectLanguage": "选择语言",
            "email": "邮箱",
            "password": "密码",
            "signIn": "登录",
            "signUp": "注册",
            "forgotPassword": "忘记密码？",
            "loading": "加载中...",
            "save": "保存",
            "cancel": "取消",
            "delete": "删除",
            "edit": "编辑",
            "close": "关闭",
        },
        "nav": {
            "signout": "退出",
            "overview": "概览",
            "financialManagement": "财务管理",
            "documentsHandling": "文档处理",
            "retirementCalculator": "退休计算器",
            "investmentSettings": "投资设置",
            "beneficiaries": "受益人",
            "consultations": "咨询",
            "profileSettings": "个人设置",
        },
    },
    "ja": {
        "common": {
            "welcome": "Secure Retireへようこそ",
            "getStarted": "始める",
            "currency": "通貨",
            "language": "言語",
            "selectLanguage": "言語を選択",
            "email": "メールアドレス",
            "password": "パスワード",
            "signIn": "サインイン",
            "signUp": "サインアップ",
            "forgotPassword": "パスワードをお忘れですか？",
            "loading": "読み込み中...",
            "save": "保存",
            "cancel": "キャンセル",
            "delete": "削除",
            "edit": "編集",
            "close": "閉じる",
        },
        "nav": {
            "signout": "サインアウト",
            "overview": "概要",
            "financialManagement": "財務管理",
            "documentsHandling": "文書管理",
            "retirementCalculator": "退職計算機",
            "investmentSettings": "投資設定",
            "beneficiaries": "受益者",
            "consultations": "相談",
            "profileSettings": "プロフィール設定",
        },
    },
}


def flatten(tree: dict, prefix: str = "") -> dict[str, str]:
    """Nested catalog to dotted keys."""
    flat = {}
    for key, value in tree.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten(value, path))
        else:
            flat[path] = value
    return flat
