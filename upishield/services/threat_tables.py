"""
Lookup tables for URL heuristics.

Kept as plain data so they can be extended without touching the scorer.
"""

from typing import Dict, FrozenSet, Tuple

SAFE_TLDS: FrozenSet[str] = frozenset({
    ".com", ".in", ".co.in", ".org", ".net", ".edu", ".gov", ".mil",
    ".ac.in", ".gov.in", ".nic.in", ".res.in", ".int",
})

# Checked in order; the first brand that matches wins.
TARGETED_BRANDS: Tuple[str, ...] = (
    # Tech & social
    "google", "gmail", "facebook", "instagram", "twitter", "linkedin", "github",
    "microsoft", "apple", "amazon", "netflix", "whatsapp", "telegram", "discord",
    "adobe", "dropbox", "paypal",
    # Banking, payments & crypto
    "sbi", "onlinesbi", "hdfc", "hdfcbank", "icici", "icicibank", "axis",
    "axisbank", "kotak", "pnb", "bob", "canara", "paytm", "phonepe", "gpay",
    "bhim", "upi", "razorpay", "stripe", "wise", "binance", "coinbase",
    "blockchain",
    # Shopping
    "flipkart", "myntra", "ajio", "meesho", "snapdeal", "ebay", "walmart",
    "target", "bestbuy",
    # Services
    "irctc", "zomato", "swiggy", "uber", "ola", "airbnb", "booking",
)

URL_SHORTENERS: FrozenSet[str] = frozenset({
    "bit.ly", "tinyurl.com", "is.gd", "t.co", "goo.gl", "shorte.st", "ow.ly",
    "buff.ly", "bl.ink", "mcaf.ee", "rb.gy", "rebrand.ly", "cutt.ly",
})

# Look-alike character -> the latin letter it imitates
HOMOGLYPH_MAP: Dict[str, str] = {
    "0": "o", "1": "l", "3": "e", "4": "a", "5": "s", "6": "g", "8": "b", "9": "g",
    "@": "a", "$": "s", "!": "i",
    # Cyrillic
    "а": "a", "с": "c", "е": "e", "о": "o",
    "р": "p", "х": "x", "у": "y",
}

NON_ASCII_HOMOGLYPHS: FrozenSet[str] = frozenset(ch for ch in HOMOGLYPH_MAP if ord(ch) > 127)

# Scam vocabulary seen in receiver UPI ids
SUSPICIOUS_UPI_KEYWORDS: Tuple[str, ...] = (
    "cashback", "lottery", "winner", "prize", "reward", "lucky", "free",
    "offer", "bonus", "refund", "claim", "urgent", "verify",
)

# Wider list applied when scoring a payment after it has been made
COMPLETED_SCAM_KEYWORDS: Tuple[str, ...] = (
    "cashback", "lottery", "winner", "prize", "reward", "lucky", "free",
    "offer", "bonus", "refund", "govt", "scheme", "subsidy", "official", "verify",
)
