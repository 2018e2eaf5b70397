"""Locale to language-name mapping used when building prompts."""

from __future__ import annotations


DEFAULT_LANGUAGE = "English"

LANGUAGE_NAMES: dict[str, str] = {
    "zh": "Chinese",
    "en": "English",
    "ja": "Japanese",
    "ko": "Korean",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ar": "Arabic",
    "hi": "Hindi",
    "th": "Thai",
    "vi": "Vietnamese",
    "id": "Indonesian",
    "ms": "Malay",
    "tr": "Turkish",
    "pl": "Polish",
    "nl": "Dutch",
    "sv": "Swedish",
    "da": "Danish",
    "no": "Norwegian",
    "nb": "Norwegian",
    "fi": "Finnish",
    "he": "Hebrew",
    "iw": "Hebrew",
    "uk": "Ukrainian",
    "cs": "Czech",
    "el": "Greek",
    "hu": "Hungarian",
    "ro": "Romanian",
}

FAILURE_MESSAGES: dict[str, str] = {
    "English": "Sorry, I couldn't describe this photo. Please try again.",
    "Chinese": "抱歉，无法描述这张照片，请重试。",
    "Japanese": "申し訳ありません。この写真を説明できませんでした。もう一度お試しください。",
    "Korean": "죄송합니다. 이 사진을 설명할 수 없습니다. 다시 시도해 주세요.",
    "Spanish": "Lo siento, no pude describir esta foto. Inténtalo de nuevo.",
    "French": "Désolé, je n'ai pas pu décrire cette photo. Veuillez réessayer.",
    "German": "Entschuldigung, dieses Foto konnte nicht beschrieben werden. Bitte versuche es erneut.",
    "Italian": "Spiacente, non sono riuscito a descrivere questa foto. Riprova.",
    "Portuguese": "Desculpe, não consegui descrever esta foto. Tente novamente.",
    "Russian": "Извините, не удалось описать это фото. Попробуйте ещё раз.",
    "Arabic": "عذرًا، لم أتمكن من وصف هذه الصورة. يرجى المحاولة مرة أخرى.",
    "Hindi": "क्षमा करें, मैं इस फ़ोटो का वर्णन नहीं कर सका। कृपया फिर से प्रयास करें।",
    "Thai": "ขออภัย ไม่สามารถอธิบายภาพนี้ได้ กรุณาลองอีกครั้ง",
    "Vietnamese": "Xin lỗi, tôi không thể mô tả bức ảnh này. Vui lòng thử lại.",
    "Indonesian": "Maaf, saya tidak dapat mendeskripsikan foto ini. Silakan coba lagi.",
    "Malay": "Maaf, saya tidak dapat menerangkan foto ini. Sila cuba lagi.",
    "Turkish": "Üzgünüm, bu fotoğrafı açıklayamadım. Lütfen tekrar deneyin.",
    "Polish": "Przepraszam, nie udało się opisać tego zdjęcia. Spróbuj ponownie.",
    "Dutch": "Sorry, ik kon deze foto niet beschrijven. Probeer het opnieuw.",
    "Swedish": "Tyvärr kunde jag inte beskriva det här fotot. Försök igen.",
    "Danish": "Beklager, jeg kunne ikke beskrive dette foto. Prøv igen.",
    "Norwegian": "Beklager, jeg kunne ikke beskrive dette bildet. Prøv igjen.",
    "Finnish": "Valitettavasti en pystynyt kuvailemaan tätä kuvaa. Yritä uudelleen.",
    "Hebrew": "מצטער, לא הצלחתי לתאר את התמונה הזו. נסה שוב.",
    "Ukrainian": "Вибачте, не вдалося описати це фото. Спробуйте ще раз.",
    "Czech": "Omlouvám se, tuto fotografii se nepodařilo popsat. Zkuste to znovu.",
    "Greek": "Λυπάμαι, δεν μπόρεσα να περιγράψω αυτή τη φωτογραφία. Δοκιμάστε ξανά.",
    "Hungarian": "Sajnálom, nem sikerült leírni ezt a fényképet. Kérjük, próbálja újra.",
    "Romanian": "Ne pare rău, nu am putut descrie această fotografie. Încercați din nou.",
}


def resolve(locale_code: str | None) -> str:
    """Return the English name of the language for a device locale code.

    Only the language subtag is considered, so ``zh-Hans-CN``, ``zh_TW``
    and ``ZH`` all resolve to ``Chinese``. Anything unknown resolves to
    English.
    """
    code = (locale_code or "").strip().lower().replace("-", "_")
    prefix = code.split("_", 1)[0]
    return LANGUAGE_NAMES.get(prefix, DEFAULT_LANGUAGE)


def failure_message(language_name: str) -> str:
    """Return the user-facing fallback sentence shown when a cycle fails."""
    return FAILURE_MESSAGES.get(language_name, FAILURE_MESSAGES[DEFAULT_LANGUAGE])
