"""User-facing texts, keyed by locale."""

DEFAULT_LOCALE = "zh"

_MESSAGES = {
    "zh": {
        "unsupported_type": "请上传图片文件 (JPG, PNG)",
        "too_large": "图片大小不能超过 {max_mb}MB",
        "upload_failed": "上传或处理失败，请重试",
        "fallback_prompt": "AI 抠图失败: {reason}\n\n是否切换到模拟模式（仅显示原图）继续？",
        "unknown_error": "未知错误",
    },
    "en": {
        "unsupported_type": "Please upload an image file (JPG, PNG)",
        "too_large": "Images must not exceed {max_mb}MB",
        "upload_failed": "Upload or processing failed, please try again",
        "fallback_prompt": (
            "Background removal failed: {reason}\n\n"
            "Continue in mock mode (shows the original image only)?"
        ),
        "unknown_error": "Unknown error",
    },
}


def get_message(key: str, locale: str = DEFAULT_LOCALE, **kwargs) -> str:
    catalog = _MESSAGES.get(locale, _MESSAGES[DEFAULT_LOCALE])
    return catalog[key].format(**kwargs)


def fallback_prompt(reason: str, locale: str = DEFAULT_LOCALE) -> str:
    return get_message(
        "fallback_prompt",
        locale,
        reason=reason or get_message("unknown_error", locale),
    )
