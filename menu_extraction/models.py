# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Data model for the menu extraction pipeline.

This module defines the dataclasses that flow between the pipeline phases:
document references, scope and workload estimates, extraction batches and
tasks, extracted menu items and their modifiers, and the final result.

Objects built from model output go through the strict ``from_dict``
constructors below, which either return a fully populated instance or raise
``ValueError``.
"""

import base64
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class MediaKind(Enum):
    """Supported source document kinds."""

    PDF = "pdf"
    SPREADSHEET = "spreadsheet"
    IMAGE = "image"


class Complexity(Enum):
    """Complexity tier of a document's menu layout."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Any, default: "Complexity" = None) -> "Complexity":
        """Parse a complexity label, falling back to ``default`` (MEDIUM)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return default or cls.MEDIUM


class BatchKind(Enum):
    """How an extraction batch covers its documents."""

    WHOLE_DOCUMENT_GROUP = "small_group"  # One or more whole documents
    DOCUMENT_SEGMENT = "large_segment"  # A slice of one large document


class ModifierKind(Enum):
    """Kind of a modifier group."""

    SIZE = "size"
    ADDON = "addon"
    CHOICE = "choice"


class ModelTier(Enum):
    """Model service tier used for an oracle call."""

    FAST = "fast"
    EXPERT = "expert"


def _format_price(value: Any) -> Optional[str]:
    """Normalize a price value from model output to a currency string."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid price value: {value!r}")
    if isinstance(value, (int, float)):
        return f"${value:.2f}"
    if isinstance(value, str):
        return value.strip()
    raise ValueError(f"Invalid price value: {value!r}")


def _string_list(value: Any, field_name: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be a list")
    return [str(v).strip() for v in value if str(v).strip()]


@dataclass
class DocumentRef:
    """One uploaded source file."""

    id: str
    name: str
    media_type: str
    content: Optional[Union[bytes, str]] = None  # Raw bytes or base64 text
    location: Optional[str] = None  # s3:// URI, http(s) URL or local path

    @property
    def media_kind(self) -> Optional[MediaKind]:
        """Media kind derived from the declared media type, None if unsupported."""
        media_type = (self.media_type or "").lower()
        if media_type == "application/pdf":
            return MediaKind.PDF
        if media_type.startswith("image/"):
            return MediaKind.IMAGE
        if "spreadsheet" in media_type or "excel" in media_type or media_type == "text/csv":
            return MediaKind.SPREADSHEET
        return None

    @property
    def is_image(self) -> bool:
        return self.media_kind == MediaKind.IMAGE

    def inline_bytes(self) -> Optional[bytes]:
        """Decode inline content, if any."""
        if self.content is None:
            return None
        if isinstance(self.content, bytes):
            return self.content
        return base64.b64decode(self.content)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], position: Optional[int] = None) -> "DocumentRef":
        """
        Create a DocumentRef from an API/event payload.

        A payload without an id gets "doc_<position + 1>", or a random id when
        no position is given.
        """
        if not data:
            raise ValueError("Cannot create DocumentRef from empty data")
        name = data.get("name") or data.get("file_name")
        if not name:
            raise ValueError("Document is missing a name")
        media_type = data.get("type") or data.get("mediaType") or data.get("media_type")
        if not media_type:
            raise ValueError(f"Document {name} is missing a media type")
        content = data.get("content")
        location = data.get("url") or data.get("location")
        if content is None and not location:
            raise ValueError(f"Document {name} has no content or location")
        doc_id = data.get("id")
        if not doc_id:
            doc_id = f"doc_{position + 1}" if position is not None else f"doc_{uuid.uuid4().hex[:8]}"
        return cls(
            id=str(doc_id),
            name=name,
            media_type=media_type,
            content=content,
            location=location,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.media_type,
            "location": self.location,
        }


@dataclass
class ScopeEstimate:
    """Phase 1 structural estimate for one document."""

    document_id: str
    source_filename: str
    estimated_item_count: int
    menu_sections: List[str]
    menu_location: str
    confidence: float = 0.5

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], document_id: str, source_filename: str
    ) -> "ScopeEstimate":
        """
        Validate a scoping reply.

        Raises:
            ValueError: If the item count, sections or location are missing or invalid
        """
        if not isinstance(data, dict):
            raise ValueError("Scope estimate must be a JSON object")

        count = data.get("estimatedItemCount")
        if isinstance(count, bool) or not isinstance(count, (int, float)) or count <= 0:
            raise ValueError(f"Invalid estimatedItemCount: {count!r}")

        sections = data.get("menuSections")
        if not isinstance(sections, list):
            raise ValueError("menuSections must be a list")

        location = data.get("menuLocation")
        if not isinstance(location, str) or not location.strip():
            raise ValueError("menuLocation must be a non-empty string")

        confidence = data.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            confidence = 0.5

        return cls(
            document_id=document_id,
            source_filename=source_filename,
            estimated_item_count=int(round(count)),
            menu_sections=_string_list(sections, "menuSections"),
            menu_location=location.strip(),
            confidence=min(1.0, max(0.0, float(confidence))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "sourceFilename": self.source_filename,
            "estimatedItemCount": self.estimated_item_count,
            "menuSections": list(self.menu_sections),
            "menuLocation": self.menu_location,
            "confidence": self.confidence,
        }


@dataclass
class WorkloadEstimate:
    """Refined sizing of one document, with the split decision."""

    document_id: str
    document_name: str
    estimated_items: int
    complexity: Complexity
    should_split: bool
    split_count: int = 1
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "documentName": self.document_name,
            "estimatedItems": self.estimated_items,
            "complexity": self.complexity.value,
            "shouldSplit": self.should_split,
            "splitCount": self.split_count,
            "isFallback": self.is_fallback,
        }


@dataclass(frozen=True)
class ExtractionBatch:
    """A unit of extraction work: whole documents or one document segment."""

    batch_id: str
    kind: BatchKind
    documents: List[DocumentRef]
    estimated_items: int
    menu_location: Optional[str] = None
    segment_index: Optional[int] = None
    segment_count: Optional[int] = None

    @property
    def is_segment(self) -> bool:
        return self.kind == BatchKind.DOCUMENT_SEGMENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.batch_id,
            "type": self.kind.value,
            "documents": [doc.name for doc in self.documents],
            "estimatedItems": self.estimated_items,
            "menuLocation": self.menu_location,
        }


@dataclass
class ExtractionTask:
    """A schedulable wrapper around a batch."""

    task_id: str
    batch: ExtractionBatch
    priority: float
    max_retries: int
    token_limit: int
    complexity: Complexity = Complexity.MEDIUM
    attempts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.task_id,
            "batch": self.batch.to_dict(),
            "priority": self.priority,
            "maxRetries": self.max_retries,
            "tokenLimit": self.token_limit,
        }


@dataclass(frozen=True)
class SourceInfo:
    """Where an item was found."""

    filename: str
    location: Optional[str] = None


@dataclass(frozen=True)
class CoreLineItem:
    """A menu item before modifier and size enrichment."""

    name: str
    base_price: str
    category: str
    source_info: SourceInfo
    description: Optional[str] = None

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        default_filename: str,
        default_location: Optional[str] = None,
    ) -> "CoreLineItem":
        """
        Validate one extracted item.

        Args:
            data: Item object from the model reply
            default_filename: Filename used when the item carries none
            default_location: Location used when the item carries none

        Raises:
            ValueError: If the item has no usable name
        """
        if not isinstance(data, dict):
            raise ValueError("Menu item must be a JSON object")

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Menu item has no name: {data!r}")

        price = _format_price(data.get("basePrice", data.get("price"))) or "$0.00"
        category = data.get("category")
        if not isinstance(category, str) or not category.strip():
            category = "Unknown"
        description = data.get("description")
        if not isinstance(description, str) or not description.strip():
            description = None

        source = data.get("sourceInfo") if isinstance(data.get("sourceInfo"), dict) else {}
        filename = source.get("filename")
        if not isinstance(filename, str) or not filename.strip():
            filename = default_filename
        if not filename:
            raise ValueError(f"Menu item {name!r} has no source filename")
        location = source.get("location")
        if not isinstance(location, str) or not location.strip():
            location = default_location

        return cls(
            name=name.strip(),
            base_price=price,
            category=category.strip(),
            description=description.strip() if description else None,
            source_info=SourceInfo(filename=filename.strip(), location=location),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "name": self.name,
            "basePrice": self.base_price,
            "category": self.category,
            "sourceInfo": {
                "filename": self.source_info.filename,
                "location": self.source_info.location,
            },
        }
        if self.description:
            result["description"] = self.description
        return result


@dataclass
class ModifierOption:
    """One selectable option within a modifier group."""

    name: str
    price_adjustment: Optional[str] = None
    is_default: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModifierOption":
        if not isinstance(data, dict):
            raise ValueError("Modifier option must be a JSON object")
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Modifier option has no name: {data!r}")
        return cls(
            name=name.strip(),
            price_adjustment=_format_price(data.get("priceAdjustment")),
            is_default=data.get("isDefault") is True,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"name": self.name}
        if self.price_adjustment is not None:
            result["priceAdjustment"] = self.price_adjustment
        if self.is_default:
            result["isDefault"] = True
        return result


@dataclass
class ModifierGroup:
    """A named set of modifier options and where it applies."""

    name: str
    kind: ModifierKind
    options: List[ModifierOption] = field(default_factory=list)
    applies_to_categories: List[str] = field(default_factory=list)
    applies_to_items: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModifierGroup":
        """
        Validate one modifier group.

        Options that fail validation are dropped; the group itself is rejected
        when its name, type or option list is invalid.
        """
        if not isinstance(data, dict):
            raise ValueError("Modifier group must be a JSON object")
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Modifier group has no name: {data!r}")
        try:
            kind = ModifierKind(str(data.get("type", "")).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid modifier group type: {data.get('type')!r}")
        raw_options = data.get("options")
        if not isinstance(raw_options, list):
            raise ValueError(f"Modifier group {name!r} has no options list")

        options = []
        for raw in raw_options:
            try:
                options.append(ModifierOption.from_dict(raw))
            except ValueError:
                continue

        return cls(
            name=name.strip(),
            kind=kind,
            options=options,
            applies_to_categories=_string_list(
                data.get("appliesToCategories"), "appliesToCategories"
            ),
            applies_to_items=_string_list(data.get("appliesToItems"), "appliesToItems"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "type": self.kind.value,
            "options": [option.to_dict() for option in self.options],
        }
        if self.applies_to_categories:
            result["appliesToCategories"] = list(self.applies_to_categories)
        if self.applies_to_items:
            result["appliesToItems"] = list(self.applies_to_items)
        return result


@dataclass
class EnrichedMenuItem:
    """Final catalog entry: a core item plus sizes and modifier groups."""

    core_item: CoreLineItem
    size_options: List[ModifierOption] = field(default_factory=list)
    modifier_groups: List[ModifierGroup] = field(default_factory=list)
    variants: List[CoreLineItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coreItem": self.core_item.to_dict(),
            "sizeOptions": [size.to_dict() for size in self.size_options],
            "modifierGroups": [group.to_dict() for group in self.modifier_groups],
            "variants": [variant.to_dict() for variant in self.variants],
        }


@dataclass
class TaskResult:
    """Outcome of running one extraction task."""

    task_id: str
    items: List[CoreLineItem] = field(default_factory=list)
    api_calls: int = 0
    retry_count: int = 0
    processing_time_ms: float = 0.0
    success: bool = False
    error: Optional[str] = None
    menu_location: Optional[str] = None
    document_names: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taskId": self.task_id,
            "itemCount": len(self.items),
            "apiCalls": self.api_calls,
            "retryCount": self.retry_count,
            "processingTimeMs": self.processing_time_ms,
            "success": self.success,
            "error": self.error,
            "menuLocation": self.menu_location,
            "documents": list(self.document_names),
        }


@dataclass
class FailedTask:
    """A task that produced no items, reported alongside the catalog."""

    task_id: str
    menu_location: Optional[str]
    document_names: List[str]
    error: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taskId": self.task_id,
            "menuLocation": self.menu_location,
            "documents": list(self.document_names),
            "error": self.error,
        }


@dataclass
class CostMetrics:
    """Raw resource counters for one run."""

    document_count: int
    image_count: int
    total_items: int
    api_calls: Dict[str, int] = field(default_factory=lambda: {"fast": 0, "expert": 0})
    processing_time_ms: float = 0.0
    has_complex_analysis: bool = False
    # Per tier {"inputTokens": n, "outputTokens": m}; empty when not metered
    token_usage: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentCount": self.document_count,
            "imageCount": self.image_count,
            "totalItems": self.total_items,
            "apiCalls": dict(self.api_calls),
            "processingTimeMs": self.processing_time_ms,
            "hasComplexAnalysis": self.has_complex_analysis,
            "tokenUsage": {tier: dict(usage) for tier, usage in self.token_usage.items()},
        }


@dataclass
class CostBreakdown:
    """Itemized monetary estimate in USD."""

    document_processing: float
    image_processing: float
    item_extraction: float
    api_calls: Dict[str, float]
    complex_analysis: float
    total: float
    token_source: str = "estimated"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentProcessing": self.document_processing,
            "imageProcessing": self.image_processing,
            "itemExtraction": self.item_extraction,
            "apiCalls": dict(self.api_calls),
            "complexAnalysis": self.complex_analysis,
            "total": self.total,
            "tokenSource": self.token_source,
        }


@dataclass
class ScopingResult:
    """Phase 1 output."""

    menu_indexes: List[ScopeEstimate] = field(default_factory=list)
    total_estimated_items: int = 0
    processing_strategy: str = "small_batch_sequential"
    skipped_documents: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "menuIndexes": [index.to_dict() for index in self.menu_indexes],
            "totalEstimatedItems": self.total_estimated_items,
            "processingStrategy": self.processing_strategy,
            "skippedDocuments": list(self.skipped_documents),
        }


@dataclass
class ExtractionPhaseResult:
    """Phase 2 output: planned work, per-task outcomes and the merged items."""

    workload_estimates: List[WorkloadEstimate] = field(default_factory=list)
    tasks: List[ExtractionTask] = field(default_factory=list)
    task_results: List[TaskResult] = field(default_factory=list)
    core_items: List[CoreLineItem] = field(default_factory=list)
    failed_tasks: List[FailedTask] = field(default_factory=list)
    max_in_flight: int = 0

    @property
    def batch_count(self) -> int:
        return len({task.batch.batch_id for task in self.tasks})

    @property
    def total_api_calls(self) -> int:
        return sum(result.api_calls for result in self.task_results)

    @property
    def total_retries(self) -> int:
        return sum(result.retry_count for result in self.task_results)

    def to_dict(self) -> Dict[str, Any]:
        task_count = len(self.tasks)
        avg_items = len(self.core_items) / task_count if task_count else 0.0
        return {
            "coreItems": [item.to_dict() for item in self.core_items],
            "totalItemsExtracted": len(self.core_items),
            "workloadEstimates": [estimate.to_dict() for estimate in self.workload_estimates],
            "taskResults": [result.to_dict() for result in self.task_results],
            "failedTasks": [failed.to_dict() for failed in self.failed_tasks],
            "batchingStats": {
                "taskCount": task_count,
                "batchCount": self.batch_count,
                "avgItemsPerTask": round(avg_items, 2),
                "totalApiCalls": self.total_api_calls,
                "totalRetries": self.total_retries,
                "failedTaskCount": len(self.failed_tasks),
                "maxInFlight": self.max_in_flight,
            },
        }


@dataclass
class NormalizationStats:
    """Counters reported by deduplication and normalization."""

    duplicates_removed: int = 0
    modifiers_normalized: int = 0
    sizes_consolidated: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "duplicatesRemoved": self.duplicates_removed,
            "modifiersNormalized": self.modifiers_normalized,
            "sizesConsolidated": self.sizes_consolidated,
        }


@dataclass
class NormalizationResult:
    items: List[EnrichedMenuItem]
    stats: NormalizationStats


@dataclass
class EnrichmentResult:
    """Phase 3 output."""

    enriched_items: List[EnrichedMenuItem] = field(default_factory=list)
    global_modifiers: List[ModifierGroup] = field(default_factory=list)
    item_modifiers: List[ModifierGroup] = field(default_factory=list)
    size_options: List[ModifierOption] = field(default_factory=list)
    normalization: NormalizationStats = field(default_factory=NormalizationStats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enrichedItems": [item.to_dict() for item in self.enriched_items],
            "globalModifiers": [group.to_dict() for group in self.global_modifiers],
            "itemModifiers": [group.to_dict() for group in self.item_modifiers],
            "sizeOptions": [size.to_dict() for size in self.size_options],
            "normalizationStats": self.normalization.to_dict(),
        }


@dataclass
class CostAnalysis:
    metrics: CostMetrics
    breakdown: CostBreakdown
    formatted_total: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metrics": self.metrics.to_dict(),
            "breakdown": self.breakdown.to_dict(),
            "formattedTotal": self.formatted_total,
        }


@dataclass
class OptimizedExtractionResult:
    """Everything a run produces, phase by phase."""

    phase1: ScopingResult
    phase2: ExtractionPhaseResult
    phase3: EnrichmentResult
    cost_analysis: CostAnalysis

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase1Results": self.phase1.to_dict(),
            "phase2Results": self.phase2.to_dict(),
            "phase3Results": self.phase3.to_dict(),
            "costAnalysis": self.cost_analysis.to_dict(),
        }
