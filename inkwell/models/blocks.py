# inkwell/models/blocks.py
from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict, Any, Literal, Union
from enum import Enum

class BlockType(str, Enum):
    STORY = "story"
    PROMO = "promo"
    TEXT = "text"
    DIVIDER = "divider"
    IMAGE = "image"
    FOOTER = "footer"

class BlockModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

class StoryBlockData(BlockModel):
    title: str = ""
    link: str = ""
    blurb: str = ""
    image_url: Optional[str] = None
    image_alt: Optional[str] = None
    publication_name: Optional[str] = None

class PromoBlockData(BlockModel):
    title: str = ""
    content: str = ""
    link: Optional[str] = None
    link_text: Optional[str] = None
    background_color: Optional[str] = None

class TextBlockData(BlockModel):
    content: str = ""
    alignment: Literal["left", "center", "right"] = "left"

class DividerBlockData(BlockModel):
    style: Literal["simple", "decorative", "spacer"] = "simple"

class ImageBlockData(BlockModel):
    url: str = ""
    alt: str = ""
    caption: Optional[str] = None
    link: Optional[str] = None

class FooterBlockData(BlockModel):
    content: str = ""

class UnknownBlockData(BlockModel):
    """Payload of a block type this version does not know how to render."""
    model_config = ConfigDict(frozen=True, extra="allow")

class SocialLink(BlockModel):
    platform: str = ""
    url: str = ""
    label: Optional[str] = None

class FooterContent(BlockModel):
    text: str = ""
    social_links: List[SocialLink] = []
    address: Optional[str] = None

class PublicationBrand(BlockModel):
    logo_url: Optional[str] = None
    accent_color: Optional[str] = None
    header_image_url: Optional[str] = None

BlockData = Union[
    StoryBlockData,
    PromoBlockData,
    TextBlockData,
    DividerBlockData,
    ImageBlockData,
    FooterBlockData,
    FooterContent,
    UnknownBlockData,
]

BLOCK_DATA_TYPES = {
    BlockType.STORY.value: StoryBlockData,
    BlockType.PROMO.value: PromoBlockData,
    BlockType.TEXT.value: TextBlockData,
    BlockType.DIVIDER.value: DividerBlockData,
    BlockType.IMAGE.value: ImageBlockData,
    BlockType.FOOTER.value: FooterBlockData,
}

def parse_block_data(block_type: str, data: Optional[Dict[str, Any]]) -> BlockData:
    """Decode a stored block payload into the model for its type.

    Unknown block types decode into ``UnknownBlockData`` so they can be
    carried through the pipeline and skipped at render time. Raises
    ``pydantic.ValidationError`` when a known type carries a malformed payload.
    """
    model = BLOCK_DATA_TYPES.get(block_type, UnknownBlockData)
    return model.model_validate(data or {})
