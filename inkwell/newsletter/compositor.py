# inkwell/newsletter/compositor.py
import html
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from inkwell.models.blocks import (
    StoryBlockData, PromoBlockData, TextBlockData, DividerBlockData,
    ImageBlockData, FooterBlockData, FooterContent,
)
from inkwell.models.render import RenderModel, RenderBlock

DEFAULT_ACCENT_COLOR = "#e73b42"
DEFAULT_PROMO_BACKGROUND = "#fff8f0"

@dataclass(frozen=True)
class ComposedEmail:
    subject: str
    html: str
    text: str
    headers: Dict[str, str] = field(default_factory=dict)

def _e(value: Optional[str]) -> str:
    return html.escape(value or "", quote=True)

def _story_html(data: StoryBlockData, accent: str) -> str:
    image = ""
    if data.image_url:
        image = f"""
            <a href="{_e(data.link)}">
                <img src="{_e(data.image_url)}" alt="{_e(data.image_alt or data.title)}"
                     style="width: 100%; max-width: 560px; height: auto; border-radius: 4px; margin-bottom: 16px;">
            </a>"""
    return f"""
        <div style="padding: 24px 32px; border-bottom: 1px solid #e8e8e8;">{image}
            <h2 style="font-size: 22px; margin: 0 0 12px; line-height: 1.3;">
                <a href="{_e(data.link)}" style="color: #2c2c2c; text-decoration: none;">{_e(data.title)}</a>
            </h2>
            <p style="font-size: 16px; color: #666; line-height: 1.6; margin: 0 0 16px;">{_e(data.blurb)}</p>
            <a href="{_e(data.link)}" style="color: {_e(accent)}; font-weight: 600; text-decoration: none;">Read more &rarr;</a>
        </div>"""

def _promo_html(data: PromoBlockData, accent: str) -> str:
    button = ""
    if data.link:
        button = f"""
            <a href="{_e(data.link)}"
               style="display: inline-block; padding: 12px 28px; background-color: {_e(accent)}; color: #ffffff; font-weight: 600; text-decoration: none; border-radius: 4px;">{_e(data.link_text or "Learn More")}</a>"""
    return f"""
        <div style="padding: 24px 32px; text-align: center; background-color: {_e(data.background_color or DEFAULT_PROMO_BACKGROUND)};">
            <h3 style="font-size: 20px; color: #2c2c2c; margin: 0 0 12px;">{_e(data.title)}</h3>
            <p style="font-size: 15px; color: #666; line-height: 1.6; margin: 0 0 20px;">{_e(data.content)}</p>{button}
        </div>"""

def _text_html(data: TextBlockData) -> str:
    # Rich text from the editor is already HTML
    return f"""
        <div style="padding: 16px 32px; font-size: 16px; color: #353535; line-height: 1.7; text-align: {data.alignment};">{data.content}</div>"""

def _divider_html(data: DividerBlockData) -> str:
    if data.style == "spacer":
        return '\n        <div style="height: 32px;"></div>'
    if data.style == "decorative":
        return '\n        <p style="text-align: center; color: #b0b0b0; letter-spacing: 8px; margin: 16px 0;">&bull;&bull;&bull;</p>'
    return '\n        <hr style="border: none; border-top: 1px solid #e8e8e8; margin: 0;">'

def _image_html(data: ImageBlockData) -> str:
    image = f'<img src="{_e(data.url)}" alt="{_e(data.alt)}" style="width: 100%; max-width: 560px; height: auto;">'
    if data.link:
        image = f'<a href="{_e(data.link)}">{image}</a>'
    caption = ""
    if data.caption:
        caption = f'\n            <p style="font-size: 13px; color: #999; margin: 8px 0 0;">{_e(data.caption)}</p>'
    return f"""
        <div style="padding: 16px 32px; text-align: center;">
            {image}{caption}
        </div>"""

def _social_links_html(footer: Optional[FooterContent]) -> str:
    if not footer or not footer.social_links:
        return ""
    links = " &middot; ".join(
        f'<a href="{_e(social.url)}" style="color: #666; text-decoration: none;">{_e(social.label or social.platform)}</a>'
        for social in footer.social_links
    )
    return f'\n            <p style="font-size: 13px; text-align: center; margin: 0 0 12px;">{links}</p>'

def _footer_html(text: str, footer: Optional[FooterContent]) -> str:
    address = ""
    if footer and footer.address:
        address = f'\n            <p style="font-size: 12px; color: #b0b0b0; text-align: center; margin: 0 0 12px;">{_e(footer.address)}</p>'
    return f"""
        <div style="padding: 24px 32px; background-color: #f8f9fa;">
            <p style="font-size: 13px; color: #999; text-align: center; line-height: 1.6; margin: 0 0 12px;">{_e(text)}</p>{_social_links_html(footer)}{address}
        </div>"""

def render_block_html(block: RenderBlock, model: RenderModel) -> str:
    """HTML for one block; unknown block types render as nothing"""
    data = block.data
    accent = model.publication.brand.accent_color or DEFAULT_ACCENT_COLOR
    if isinstance(data, StoryBlockData):
        return _story_html(data, accent)
    if isinstance(data, PromoBlockData):
        return _promo_html(data, accent)
    if isinstance(data, TextBlockData):
        return _text_html(data)
    if isinstance(data, DividerBlockData):
        return _divider_html(data)
    if isinstance(data, ImageBlockData):
        return _image_html(data)
    if isinstance(data, FooterContent):
        return _footer_html(data.text, data)
    if isinstance(data, FooterBlockData):
        return _footer_html(data.content, model.footer)
    return ""

def render_block_text(block: RenderBlock, model: RenderModel) -> List[str]:
    data = block.data
    if isinstance(data, StoryBlockData):
        return [data.title, data.blurb, f"Read more: {data.link}"]
    if isinstance(data, PromoBlockData):
        lines = [data.title, data.content]
        if data.link:
            lines.append(f"{data.link_text or 'Learn More'}: {data.link}")
        return lines
    if isinstance(data, ImageBlockData):
        return [line for line in (data.caption, data.link) if line]
    if isinstance(data, DividerBlockData):
        return ["---"]
    if isinstance(data, (FooterContent, FooterBlockData)):
        footer = data if isinstance(data, FooterContent) else model.footer
        lines = [data.text if isinstance(data, FooterContent) else data.content]
        if footer:
            lines.extend(f"{s.label or s.platform}: {s.url}" for s in footer.social_links)
            if footer.address:
                lines.append(footer.address)
        return lines
    # Text blocks carry HTML and are omitted from the plain-text part
    return []

def compose_email(model: RenderModel, unsubscribe_url: str) -> ComposedEmail:
    """Render one recipient's email from a render model"""
    model = model.with_unsubscribe_url(unsubscribe_url)
    publication = model.publication
    issue = model.issue
    accent = publication.brand.accent_color or DEFAULT_ACCENT_COLOR

    logo = ""
    if publication.brand.logo_url:
        logo = f'\n                <img src="{_e(publication.brand.logo_url)}" alt="{_e(publication.name)}" style="max-width: 200px; margin: 0 auto 16px; display: block;">'

    body = "".join(render_block_html(block, model) for block in model.blocks)

    html_content = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{_e(issue.subject)}</title>
</head>
<body style="margin: 0; padding: 0; background-color: #f0f0f0; font-family: 'Inter', -apple-system, 'Segoe UI', sans-serif;">
    <div style="display: none; max-height: 0; overflow: hidden;">{_e(issue.preheader or issue.subject)}</div>
    <div style="max-width: 640px; margin: 0 auto; background-color: #ffffff;">
        <div style="padding: 32px 32px 24px; text-align: center; border-bottom: 3px solid {_e(accent)};">{logo}
            <h1 style="font-size: 24px; color: #2c2c2c; margin: 0 0 8px;">{_e(publication.name)}</h1>
            <p style="font-size: 14px; color: #666; margin: 0;">{_e(issue.subject)}</p>
        </div>{body}
        <div style="padding: 16px 32px 32px; text-align: center; font-size: 12px; color: #999;">
            <a href="{_e(model.urls.web_version)}" style="color: {_e(accent)}; text-decoration: none;">View in browser</a>
            &middot;
            <a href="{_e(model.urls.unsubscribe)}" style="color: {_e(accent)}; text-decoration: none;">Unsubscribe</a>
        </div>
    </div>
</body>
</html>
"""

    text_lines = [publication.name, issue.subject, ""]
    for block in model.blocks:
        lines = [line for line in render_block_text(block, model) if line]
        if lines:
            text_lines.extend(lines)
            text_lines.append("")
    text_lines.append(f"View in browser: {model.urls.web_version}")
    text_lines.append(f"Unsubscribe: {model.urls.unsubscribe}")

    return ComposedEmail(
        subject=issue.subject,
        html=html_content,
        text="\n".join(text_lines),
        headers={"List-Unsubscribe": f"<{model.urls.unsubscribe}>"},
    )
