"""Reference top-level domain labels for URL generation.

A mix of generic, country-code and internationalized labels. The script of
a label's first codepoint decides the script of the generated host label,
so non-Latin entries matter more than the length of the list.
"""

TLDS: tuple[str, ...] = (
    "app",
    "arpa",
    "art",
    "be",
    "biz",
    "br",
    "ca",
    "cat",
    "ch",
    "cloud",
    "cn",
    "co",
    "com",
    "de",
    "dev",
    "edu",
    "es",
    "eu",
    "fr",
    "gov",
    "id",
    "in",
    "info",
    "io",
    "it",
    "jp",
    "kr",
    "me",
    "mil",
    "mx",
    "net",
    "nl",
    "org",
    "pl",
    "ru",
    "se",
    "tech",
    "tv",
    "uk",
    "us",
    "xyz",
    "za",
    "ελ",
    "ευ",
    "бг",
    "бел",
    "дети",
    "ею",
    "қаз",
    "мкд",
    "мон",
    "онлайн",
    "орг",
    "рус",
    "рф",
    "сайт",
    "срб",
    "укр",
    "გე",
    "հայ",
    "ישראל",
    "קום",
    "ابوظبي",
    "الجزائر",
    "السعودية",
    "المغرب",
    "امارات",
    "ایران",
    "بھارت",
    "پاکستان",
    "عمان",
    "قطر",
    "مصر",
    "موقع",
    "कॉम",
    "नेट",
    "भारत",
    "संगठन",
    "বাংলা",
    "ভারত",
    "ਭਾਰਤ",
    "ભારત",
    "ଭାରତ",
    "இந்தியா",
    "இலங்கை",
    "சிங்கப்பூர்",
    "భారత్",
    "ಭಾರತ",
    "ഭാരതം",
    "ලංකා",
    "คอม",
    "ไทย",
    "ລາວ",
    "みんな",
    "コム",
    "セール",
    "ストア",
    "中国",
    "中文网",
    "公司",
    "台湾",
    "在线",
    "网络",
    "香港",
    "한국",
    "닷컴",
    "닷넷",
)
