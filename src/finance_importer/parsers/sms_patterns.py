"""Ordered pattern tables for bank SMS parsing.

Order inside every list is significant: the parser takes the first pattern
that matches. Expense patterns are deliberately checked before income
patterns, so a message matching both resolves to an expense.
"""

import re

from finance_importer.models.transaction import TransactionType
from finance_importer.utils.date_utils import (
    parse_iso_date,
    parse_month_name_date,
    parse_numeric_date,
)

# Currency prefix shared by the amount patterns
_CUR = r"(?:Rs\.?|INR|₹)"

# Amount captured as digits with optional comma grouping and decimals
_AMT = r"([\d,]+\.?\d*)"

TYPE_AMOUNT_PATTERNS: list[tuple[TransactionType, list[re.Pattern[str]]]] = [
    (
        TransactionType.EXPENSE,
        [
            re.compile(rf"{_CUR}\s*{_AMT}\s*(?:has been |was )?debited", re.IGNORECASE),
            re.compile(rf"debited\s*(?:by|with|for)?\s*{_CUR}?\s*{_AMT}", re.IGNORECASE),
            re.compile(rf"(?:spent|paid|purchase|payment)\s*(?:of|:)?\s*{_CUR}?\s*{_AMT}", re.IGNORECASE),
            re.compile(rf"withdrawal\s*(?:of)?\s*{_CUR}?\s*{_AMT}", re.IGNORECASE),
            re.compile(rf"{_CUR}\s*{_AMT}\s*withdrawn", re.IGNORECASE),
            re.compile(rf"txn\s*of\s*{_CUR}?\s*{_AMT}\s*at", re.IGNORECASE),
        ],
    ),
    (
        TransactionType.INCOME,
        [
            re.compile(rf"{_CUR}\s*{_AMT}\s*(?:has been |was )?credited", re.IGNORECASE),
            re.compile(rf"credited\s*(?:by|with)?\s*{_CUR}?\s*{_AMT}", re.IGNORECASE),
            re.compile(rf"(?:received|deposit|transferred to you)\s*(?:of|:)?\s*{_CUR}?\s*{_AMT}", re.IGNORECASE),
            re.compile(rf"{_CUR}\s*{_AMT}\s*deposited", re.IGNORECASE),
            re.compile(rf"salary\s*(?:of)?\s*{_CUR}?\s*{_AMT}", re.IGNORECASE),
            re.compile(rf"refund\s*(?:of)?\s*{_CUR}?\s*{_AMT}", re.IGNORECASE),
        ],
    ),
]

# (pattern, converter) pairs; the converter returns None for impossible dates
DATE_PATTERNS = [
    (re.compile(r"(?<!\d)(\d{4}-\d{1,2}-\d{1,2})(?!\d)"), parse_iso_date),
    (re.compile(r"(?<!\d)(\d{1,2}[-/]\d{1,2}[-/]\d{2,4})(?!\d)"), parse_numeric_date),
    (
        re.compile(
            r"(?<!\d)(\d{1,2}\s+(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s*\d{2,4})",
            re.IGNORECASE,
        ),
        parse_month_name_date,
    ),
    (re.compile(r"(?:on|dated?)\s*(\d{1,2}[-/]\d{1,2}[-/]\d{2,4})", re.IGNORECASE), parse_numeric_date),
]

MERCHANT_PATTERNS = [
    re.compile(r"(?:at|to|from|@)\s+([A-Za-z0-9\s&]+?)(?:\s+on|\s+dated|\s+ref|\.|\s*$)", re.IGNORECASE),
    re.compile(r"(?:Info|Ref|VPA):\s*([A-Za-z0-9@.\-_]+)", re.IGNORECASE),
    re.compile(r"UPI[-\s]*(?:Ref)?[:\s]*([A-Za-z0-9]+)", re.IGNORECASE),
    re.compile(r"(?:merchant|vendor|payee):\s*([A-Za-z0-9\s]+)", re.IGNORECASE),
]

# Capitalized word runs used when no merchant pattern matched
CAPITALIZED_WORDS = re.compile(r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*")
MERCHANT_STOPWORDS = frozenset({"The", "Your", "Account", "Dear", "Transaction"})
MERCHANT_MAX_LENGTH = 50
DEFAULT_SOURCE = "Bank Transaction"

ACCOUNT_PATTERNS = [
    re.compile(r"A/c\s*[Xx*]*(\d{4})", re.IGNORECASE),
    re.compile(r"account\s*[Xx*]*(\d{4})", re.IGNORECASE),
    re.compile(r"(?:card|ac)\s*(?:ending\s*)?[Xx*]*(\d{4})", re.IGNORECASE),
]

BALANCE_PATTERNS = [
    re.compile(rf"(?:Avl\.?\s*Bal|Available\s*Balance|Bal)[:\s]*{_CUR}?\s*{_AMT}", re.IGNORECASE),
    re.compile(rf"(?:balance|bal)[:\s]*{_CUR}?\s*{_AMT}", re.IGNORECASE),
]

# Category -> keywords, checked in insertion order against the lowercased text
CATEGORY_KEYWORDS: dict[str, list[str]] = {
    # Expense categories
    "Food": ["swiggy", "zomato", "restaurant", "food", "cafe", "pizza", "burger", "kitchen",
             "dominos", "mcdonalds", "kfc", "starbucks", "coffee"],
    "Transportation": ["uber", "ola", "rapido", "metro", "petrol", "fuel", "parking", "cab",
                       "auto", "railway", "irctc", "flight", "air"],
    "Shopping": ["amazon", "flipkart", "myntra", "ajio", "mall", "mart", "store", "shop",
                 "retail", "market"],
    "Utilities": ["electricity", "water", "gas", "bill", "recharge", "mobile", "airtel", "jio",
                  "vodafone", "broadband", "internet", "dth"],
    "Entertainment": ["netflix", "spotify", "hotstar", "prime", "movie", "cinema", "pvr",
                      "inox", "game"],
    "Health": ["hospital", "pharmacy", "medical", "doctor", "clinic", "apollo", "medplus",
               "medicine", "health"],
    "Rent": ["rent", "landlord", "housing", "pg ", "hostel"],
    "EMI": ["emi", "loan", "installment", "repayment"],
    # Income categories
    "Salary": ["salary", "payroll", "wage", "stipend", "employer"],
    "Freelance": ["freelance", "payment received", "invoice", "client"],
    "Investment": ["dividend", "interest", "mutual fund", "mf ", "stock", "trading", "nifty",
                   "sensex"],
    "Gift": ["gift", "birthday", "cashback", "reward", "bonus"],
    "Refund": ["refund", "reversal", "chargeback"],
}

EMI_CATEGORY = "EMI"

EMI_PATTERNS = [
    re.compile(rf"EMI\s*(?:of)?\s*{_CUR}?\s*{_AMT}", re.IGNORECASE),
    re.compile(rf"(?:loan|installment)\s*(?:of)?\s*{_CUR}?\s*{_AMT}", re.IGNORECASE),
    re.compile(r"(\d+)\s*(?:of|/)\s*(\d+)\s*EMI", re.IGNORECASE),
]

# "(current) of (total)" installment captures
INSTALLMENT_PATTERNS = [
    re.compile(r"(\d+)\s*(?:of|/)\s*(\d+)\s*EMI", re.IGNORECASE),
    re.compile(r"EMI\s*(?:no\.?\s*)?(\d+)\s*(?:of|/)\s*(\d+)", re.IGNORECASE),
    re.compile(r"installment\s*(?:no\.?\s*)?(\d+)\s*(?:of|/)\s*(\d+)", re.IGNORECASE),
]

# Points added to the confidence score for each signal that was found
CONFIDENCE_WEIGHTS: dict[str, int] = {
    "type_amount": 40,
    "date": 15,
    "merchant": 15,
    "account": 10,
    "balance": 10,
    "category": 10,
    "emi": 10,
}
