"""
Tool Executor

DESIGN DECISION: Tool execution is DETERMINISTIC and never raises.
The model only chooses which tool to call and with which arguments.
This executor validates those arguments, applies them to the ledger and
returns a JSON-safe result dict that is fed back to the model.

Every failure (unknown tool, invalid arguments, storage error) becomes
{"success": False, "error": ...} so the model can decide how to answer
the user. Nothing a tool does can turn into an HTTP 500.

Mutations of an item addressed by (period, kind, name) follow one rule,
implemented once in _resolve_or_overlay: if a durable item matches,
change it; otherwise write an overlay with the same key.
"""

from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from stark.audit import AuditLogger
from stark.models.audit import AuditEventType
from stark.models.ledger import (
    DeletionMarker,
    EditOverride,
    ItemKind,
    LedgerItem,
    LedgerKey,
    OverlayRecord,
    StatusOverride,
    to_money,
    utc_now,
)
from stark.models.tools import (
    CreateItemArgs,
    CreateItemsBatchArgs,
    DeleteItemArgs,
    EditItemArgs,
    FinancialSummaryArgs,
    ItemKeyArgs,
    ListItemsArgs,
    UpdateStatusArgs,
)
from stark.queries import LedgerViews, compute_summary, compute_totals
from stark.services.storage import BaselineDataset, LedgerStorageInterface
from stark.tools.registry import get_tool, tool_names
from stark.validation import ToolArgumentValidator


Handler = Callable[[Any, Optional[UUID]], Awaitable[dict]]


class ToolExecutor:
    """
    Executes validated tool calls against ledger storage.

    GUARANTEES:
    - Only the tools in the registry can run
    - Arguments are validated before any storage access
    - Durable records always win over overlays
    - execute() returns a result dict, it never raises
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        baseline: Optional[BaselineDataset] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[ToolArgumentValidator] = None,
    ):
        self._storage = storage
        self._baseline = baseline
        self._views = LedgerViews(storage, baseline)
        self._audit = audit_logger or AuditLogger()
        self._validator = validator or ToolArgumentValidator()

        self._handlers: dict[str, Handler] = {
            "create_item": self._create_item,
            "create_items_batch": self._create_items_batch,
            "update_status": self._update_status,
            "edit_item": self._edit_item,
            "delete_item": self._delete_item,
            "list_items": self._list_items,
            "financial_summary": self._financial_summary,
        }

        drift = set(tool_names()) ^ set(self._handlers)
        if drift:
            raise RuntimeError(f"Tool registry and handlers differ: {sorted(drift)}")

    async def execute(
        self,
        name: str,
        arguments: Any,
        tool_use_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> dict:
        """
        Validate and run one tool call.

        Args:
            name: Tool name chosen by the model
            arguments: Raw arguments from the model
            tool_use_id: The model's id for this call (for the audit trail)
            correlation_id: Id of the /agent request

        Returns:
            Result dict with a "success" key
        """
        tool = get_tool(name)
        if tool is None:
            result = {"success": False, "error": f"Ferramenta desconhecida: {name}"}
            await self._audit.log_tool_executed(
                tool_use_id, name, False, correlation_id, error=result["error"]
            )
            return result

        validation = self._validator.validate(tool, arguments)
        if not validation.is_valid:
            await self._audit.log_tool_validation_failed(
                tool_name=name,
                issues=[issue.model_dump() for issue in validation.issues],
                correlation_id=correlation_id,
            )
            result = {
                "success": False,
                "error": f"Argumentos inválidos: {validation.error_summary()}",
            }
            await self._audit.log_tool_executed(
                tool_use_id, name, False, correlation_id, error=result["error"]
            )
            return result

        try:
            result = await self._handlers[name](validation.arguments, correlation_id)
        except Exception as e:
            result = {"success": False, "error": str(e) or type(e).__name__}

        if validation.warnings:
            result["warnings"] = validation.warnings

        await self._audit.log_tool_executed(
            tool_use_id,
            name,
            result.get("success", False),
            correlation_id,
            error=result.get("error"),
        )
        return result

    # =========================================================================
    # CREATE
    # =========================================================================

    async def _insert(
        self,
        args: CreateItemArgs,
        correlation_id: Optional[UUID],
    ) -> LedgerItem:
        item = LedgerItem(
            period=args.period,
            kind=args.kind,
            name=args.name,
            amount=to_money(args.amount),
            category=args.category,
            status=args.status,
            due_date=args.due_date,
            settlement_date=args.settlement_date,
        )
        stored = await self._storage.create_item(item)
        await self._audit.log_ledger_changed(
            AuditEventType.LEDGER_ITEM_CREATED,
            str(stored.id),
            stored.key,
            correlation_id,
            details={"amount": float(stored.amount), "status": stored.status.value},
        )
        return stored

    async def _create_item(
        self,
        args: CreateItemArgs,
        correlation_id: Optional[UUID],
    ) -> dict:
        stored = await self._insert(args, correlation_id)
        return {
            "success": True,
            "item": stored.to_result(),
            "message": f"Lançamento '{stored.name}' criado em {stored.period}",
        }

    async def _create_items_batch(
        self,
        args: CreateItemsBatchArgs,
        correlation_id: Optional[UUID],
    ) -> dict:
        """Create each entry independently; one failure never blocks the rest."""
        create_tool = get_tool("create_item")
        results = []

        for index, entry in enumerate(args.items):
            validation = self._validator.validate(create_tool, entry)
            if not validation.is_valid:
                results.append({
                    "index": index,
                    "success": False,
                    "error": f"Argumentos inválidos: {validation.error_summary()}",
                })
                continue

            try:
                stored = await self._insert(validation.arguments, correlation_id)
            except Exception as e:
                results.append({
                    "index": index,
                    "success": False,
                    "error": str(e) or type(e).__name__,
                })
                continue

            results.append({"index": index, "success": True, "item": stored.to_result()})

        created = sum(1 for r in results if r["success"])
        failed = len(results) - created
        return {
            "success": created > 0 or not results,
            "total": len(results),
            "created": created,
            "failed": failed,
            "results": results,
            "message": f"{created} de {len(results)} lançamentos criados",
        }

    # =========================================================================
    # RESOLVE OR OVERLAY
    # =========================================================================

    async def _resolve_or_overlay(
        self,
        args: ItemKeyArgs,
        change_item: Callable[[LedgerItem], dict],
        build_overlay: Callable[[], Awaitable[OverlayRecord]],
        correlation_id: Optional[UUID],
    ) -> dict:
        """
        Apply a change to the durable item with this key, or to an overlay.

        Only the first (oldest) durable match is changed. With no durable
        match, the overlay built by build_overlay replaces any overlay of
        the same type and key.
        """
        item = await self._storage.find_item(args.period, args.kind, args.item_name)

        if item is not None:
            changes = change_item(item)
            updated = LedgerItem.model_validate({
                **item.model_dump(),
                **changes,
                "updated_at": utc_now(),
            })
            updated = await self._storage.update_item(updated)
            await self._audit.log_ledger_changed(
                AuditEventType.LEDGER_ITEM_UPDATED,
                str(updated.id),
                item.key,
                correlation_id,
                details={k: getattr(v, "value", v) for k, v in changes.items()},
            )
            return {"success": True, "target": "ledger", "item": updated.to_result()}

        overlay = await self._storage.upsert_overlay(await build_overlay())
        await self._audit.log_overlay_written(overlay.overlay_type, overlay.key, correlation_id)
        return {"success": True, "target": "overlay", "overlay": overlay.to_result()}

    async def _update_status(
        self,
        args: UpdateStatusArgs,
        correlation_id: Optional[UUID],
    ) -> dict:
        def change_item(item: LedgerItem) -> dict:
            changes = {"status": args.new_status}
            if args.settlement_date is not None:
                changes["settlement_date"] = args.settlement_date
            return changes

        async def build_overlay() -> StatusOverride:
            return StatusOverride(
                period=args.period,
                kind=args.kind,
                item_name=args.item_name,
                status=args.new_status,
                settlement_date=args.settlement_date,
            )

        result = await self._resolve_or_overlay(args, change_item, build_overlay, correlation_id)
        result["message"] = f"Status de '{args.item_name}' alterado para {args.new_status.value}"
        return result

    async def _edit_item(
        self,
        args: EditItemArgs,
        correlation_id: Optional[UUID],
    ) -> dict:
        def change_item(item: LedgerItem) -> dict:
            changes = {}
            if args.new_name is not None:
                changes["name"] = args.new_name
            if args.new_amount is not None:
                changes["amount"] = to_money(args.new_amount)
            if args.new_category is not None:
                changes["category"] = args.new_category
            return changes

        async def build_overlay() -> EditOverride:
            override = EditOverride(
                period=args.period,
                kind=args.kind,
                item_name=args.item_name,
                new_name=args.new_name,
                new_amount=to_money(args.new_amount) if args.new_amount is not None else None,
                new_category=args.new_category,
            )
            previous = await self._storage.get_overlay(
                EditOverride, args.period, args.kind, args.item_name
            )
            return override.merged_onto(previous)

        result = await self._resolve_or_overlay(args, change_item, build_overlay, correlation_id)

        # A durable item renamed away from a baseline key stops shadowing it
        old_key = LedgerKey(args.period, args.kind, args.item_name)
        renamed = args.new_name is not None and args.new_name != args.item_name
        if (
            result["target"] == "ledger"
            and renamed
            and self._baseline is not None
            and self._baseline.contains(old_key)
        ):
            marker = await self._storage.upsert_overlay(DeletionMarker(
                period=args.period,
                kind=args.kind,
                item_name=args.item_name,
            ))
            await self._audit.log_overlay_written(
                marker.overlay_type, marker.key, correlation_id
            )
            result["marker"] = marker.to_result()

        result["message"] = f"Lançamento '{args.item_name}' atualizado"
        return result

    async def _delete_item(
        self,
        args: DeleteItemArgs,
        correlation_id: Optional[UUID],
    ) -> dict:
        """
        Delete every durable item with this key.

        A deletion marker is written when nothing durable matched, and
        also when the baseline holds an item with the same key, which
        would otherwise reappear in the reconciled view.
        """
        matches = [
            item
            for item in await self._storage.list_items(args.period, args.kind)
            if item.name == args.item_name
        ]

        deleted = 0
        for item in matches:
            if await self._storage.delete_item(item.id):
                deleted += 1
                await self._audit.log_ledger_changed(
                    AuditEventType.LEDGER_ITEM_DELETED,
                    str(item.id),
                    item.key,
                    correlation_id,
                )

        marker = None
        key = LedgerKey(args.period, args.kind, args.item_name)
        in_baseline = self._baseline is not None and self._baseline.contains(key)
        if not matches or in_baseline:
            marker = await self._storage.upsert_overlay(DeletionMarker(
                period=args.period,
                kind=args.kind,
                item_name=args.item_name,
            ))
            await self._audit.log_overlay_written(
                marker.overlay_type, marker.key, correlation_id
            )

        return {
            "success": True,
            "target": "ledger" if matches else "overlay",
            "deleted": deleted,
            "marker": marker.to_result() if marker else None,
            "message": f"Lançamento '{args.item_name}' excluído",
        }

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def _list_items(
        self,
        args: ListItemsArgs,
        correlation_id: Optional[UUID],
    ) -> dict:
        items = await self._views.items(args.period, view=args.view)
        if args.kind != "all":
            kind = ItemKind(args.kind)
            listed = [item for item in items if item.kind == kind]
        else:
            listed = items

        return {
            "success": True,
            "period": args.period,
            "view": args.view,
            "count": len(listed),
            "items": [item.to_result() for item in listed],
            "totals": compute_totals(items),
        }

    async def _financial_summary(
        self,
        args: FinancialSummaryArgs,
        correlation_id: Optional[UUID],
    ) -> dict:
        items = await self._views.items(args.period, view=args.view)
        return {
            "success": True,
            "period": args.period,
            "view": args.view,
            **compute_summary(items),
        }
