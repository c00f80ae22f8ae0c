"""
Client for the AllPlayers Store API (carts, orders, products, payments).
"""

import datetime
import re
from typing import Any, Dict, Iterable, List, Optional, Union

from .client import HttpClient, compact
from .constants import DATE_FORMAT, DATETIME_FORMAT, STORE_PRODUCTS_PAGESIZE
from .models import (
    GroupStore,
    LineItem,
    Order,
    Payment,
    PaymentMethod,
    Product,
    decode_list,
)


def to_utc(value: datetime.date) -> datetime.datetime:
    """Convert to an aware UTC datetime; naive values are taken as UTC."""
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, datetime.time())
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def format_date(value: Optional[datetime.date], utc: bool = False) -> Optional[str]:
    """Format as YYYY-MM-DD, optionally converting to UTC first."""
    if not value:
        return None
    if utc:
        value = to_utc(value)
    return value.strftime(DATE_FORMAT)


def format_datetime(value: Optional[datetime.date]) -> Optional[str]:
    """Format as YYYY-MM-DDTHH:MM:00 in UTC."""
    if not value:
        return None
    return to_utc(value).strftime(DATETIME_FORMAT)


def get_registration_sku(group_name: str, role_id: Union[int, str]) -> str:
    """SKU of the registration fee product for a group role."""
    prefix = re.sub(r'[^A-Za-z0-9_]', '', group_name.replace(' ', '_'))[:10]
    return f"{prefix.lower()}-registration_fee-{role_id}"


def get_registration_product_title(group_name: str, product_name: str, role_name: str) -> str:
    return f"{role_name} {product_name} for {group_name}"


def _one(cls, payload):
    return cls.from_api(payload) if payload else None


class StoreClient(HttpClient):
    """
    Client for a Store site, e.g. https://store.allplayers.com.

    Listing methods return lists of models, single resource methods return
    one model (or None when the API answers with an empty body).
    """

    get_registration_sku = staticmethod(get_registration_sku)
    get_registration_product_title = staticmethod(get_registration_product_title)

    # Links into the store for end users

    def users_cart_url(self) -> str:
        return f"{self.base_url}/cart"

    def users_orders_url(self) -> str:
        return f"{self.base_url}/orders"

    def users_bills_url(self) -> str:
        return f"{self.base_url}/bills"

    def group_store_url(self, uuid: str) -> str:
        return f"{self.base_url}/group_store/uuid/{uuid}"

    def product_url(self, uuid: str) -> str:
        return f"{self.base_url}/product/uuid/{uuid}"

    def embed_donate_html(self, uuid: str) -> str:
        """HTML snippet embedding the donation form of a group store."""
        return f"<script src='{self.base_url}/groups/{uuid}/donation-embed/js'></script>"

    # Users

    def users_cart_index(self, user_uuid: str) -> List[LineItem]:
        return decode_list(LineItem, self.index(f"users/{user_uuid}/cart"))

    def users_cart_add(
        self,
        user_uuid: str,
        product_uuid: str,
        for_user_uuid: Optional[str] = None,
        installment_plan: bool = False,
        role_uuid: Optional[str] = None,
        sold_by_uuid: Optional[str] = None,
        force_invoice: bool = False,
        creator_uuid: Optional[str] = None,
    ) -> Optional[Order]:
        """
        Add a product to a user's cart.

        Args:
            user_uuid: User whose cart receives the product
            product_uuid: Product to add
            for_user_uuid: User the product is actually purchased for
            installment_plan: Purchase with an installment plan
            role_uuid: Role to associate the purchase with for registration
            sold_by_uuid: Group selling the product
            force_invoice: Invoice the product regardless of its settings
            creator_uuid: User creating the line item, defaults to the
                authenticated user

        Returns:
            The order the product was added to
        """
        response = self.post(
            f"users/{user_uuid}/add_to_cart",
            {
                'product_uuid': product_uuid,
                'for_user_uuid': for_user_uuid,
                'installment_plan': installment_plan,
                'role_uuid': role_uuid,
                'sold_by_uuid': sold_by_uuid,
                'force_invoice': force_invoice,
                'creator_uuid': creator_uuid,
            },
        )
        return _one(Order, response)

    def users_relationships_sync(self, user_uuid: str, og_role: str) -> bool:
        """Sync a role (guardian, friend, ...) for a user."""
        return bool(self.post(f"users/{user_uuid}/sync_relationships", {'og_role': og_role}))

    def users_merge(self, base_user_uuid: str, merge_user_uuid: str) -> Optional[str]:
        """
        Merge one user into another; privileged users only.

        Everything owned by or referencing the merged user is moved to the
        base user and the merged user is deleted.

        Returns:
            UUID of the base user
        """
        response = self.post(f"users/{base_user_uuid}/merge/{merge_user_uuid}", {})
        return response.get('uuid') if response else None

    def user_login(self, username: str, password: str) -> Any:
        # Core services login lives under 'user/', not the custom 'users/'.
        return self.post('user/login', {'username': username, 'password': password})

    # Group stores

    def group_store_index(self, user_uuid: str = '', is_admin: bool = False, accepts_payment: bool = False) -> List[GroupStore]:
        """
        List group stores.

        Args:
            user_uuid: Only stores of groups this user is a member of
            is_admin: Only groups the user administers
            accepts_payment: Only administered groups taking their own payments
        """
        response = self.get(
            'group_stores',
            {
                'user_uuid': user_uuid,
                'is_admin': 1 if is_admin else 0,
                'accepts_payment': 1 if accepts_payment else 0,
            },
        )
        return decode_list(GroupStore, response)

    def group_store_get(self, uuid: str) -> Optional[GroupStore]:
        return _one(GroupStore, self.get(f"group_stores/{uuid}"))

    def group_store_activate(self, uuid: str) -> Optional[GroupStore]:
        """Initialize and enable the store of a group."""
        return _one(GroupStore, self.post('group_stores', {'uuid': uuid}))

    def group_store_update(self, uuid: str, data: Dict[str, Any]) -> Optional[GroupStore]:
        """Update a group store to match group information."""
        return _one(GroupStore, self.put(f"group_stores/{uuid}", data))

    def group_store_sync_users(self, uuid: str, admins_only: bool = True, og_role: Optional[str] = None) -> Any:
        """Synchronize group store users with users on www."""
        return self.post(
            f"group_stores/{uuid}/sync_users",
            {'admins_only': admins_only, 'og_role': og_role},
        )

    def group_store_products_index(
        self,
        group_uuid: str,
        type: Optional[str] = None,
        available_for_sale: bool = False,
        page: Union[int, str] = 0,
        pagesize: int = STORE_PRODUCTS_PAGESIZE,
        show_disabled: bool = False,
    ) -> List[Product]:
        """
        List the products of a group store.

        Args:
            group_uuid: Group to list products for
            type: Only products of this type
            available_for_sale: Every product the group can sell, not only
                its own
            page: Page number or '*' for every page
            pagesize: Products per page
            show_disabled: Include disabled products
        """
        params = {'type': type} if type else {}
        params['show_disabled'] = show_disabled

        path = f"group_stores/{group_uuid}/products"
        if available_for_sale:
            path += '/available_for_sale'

        return decode_list(Product, self.index(path, params, None, page, pagesize))

    def group_payment_method_set(self, group_uuid: str, method: str, method_info: Optional[Dict[str, Any]] = None) -> List[PaymentMethod]:
        response = self.post(
            f"group_stores/{group_uuid}/payment_method",
            {'method': method, 'method_info': method_info or {}},
        )
        return decode_list(PaymentMethod, response)

    def group_payment_method_get(self, group_uuid: str, method: Optional[str] = None) -> List[PaymentMethod]:
        params = {'method': method} if method is not None else None
        return decode_list(PaymentMethod, self.get(f"group_stores/{group_uuid}/payment_methods", params))

    def group_payee_get(self, group_uuid: str) -> Optional[str]:
        """UUID of the group's payee, None if no payee has been set."""
        response = self.get(f"group_stores/{group_uuid}/payee")
        return response.get('uuid') if response else None

    def group_payee_set(self, group_uuid: str, payee_uuid: Optional[str] = None) -> Optional[str]:
        """
        Set the group payee; without a payee the group's own payment
        configuration is used.

        Returns:
            UUID of the payee that was set
        """
        params = {'payee_uuid': payee_uuid} if payee_uuid is not None else None
        response = self.post(f"group_stores/{group_uuid}/payee", params)
        return response.get('uuid') if response else None

    # Line items

    def line_items_get(self, uuid: str) -> Optional[LineItem]:
        return _one(LineItem, self.get(f"line_items/{uuid}"))

    def line_item_put(self, uuid: str, seller_uuid: Optional[str] = None, user_uuid: Optional[str] = None) -> Optional[LineItem]:
        """Change the seller group or the purchasing user of a line item."""
        response = self.put(
            f"line_items/{uuid}",
            {'seller_uuid': seller_uuid, 'user_uuid': user_uuid},
        )
        return _one(LineItem, response)

    def line_items_index(
        self,
        originating_order_uuid: Optional[str] = None,
        product_uuid: Optional[str] = None,
        originating_product_uuid: Optional[str] = None,
        line_item_type: Optional[str] = None,
        user_uuid: Optional[str] = None,
        seller_uuid: Optional[str] = None,
        fields: Optional[Iterable[str]] = None,
        pagesize: int = 0,
        page: Union[int, str] = 0,
    ) -> List[LineItem]:
        params = {
            'originating_order_uuid': originating_order_uuid,
            'originating_product_uuid': originating_product_uuid,
            'line_item_type': line_item_type,
            'product_uuid': product_uuid,
            'user_uuid': user_uuid,
            'seller_uuid': seller_uuid,
        }
        return decode_list(LineItem, self.index('line_items', compact(params), fields, page, pagesize))

    # Orders

    def order_get(self, order_uuid: str) -> Optional[Order]:
        return _one(Order, self.get(f"orders/{order_uuid}"))

    def order_create(
        self,
        user_uuid: str,
        group_uuid: str,
        line_items: List[Dict[str, Any]],
        order_status: str = 'cart',
        created: Optional[datetime.datetime] = None,
        due_date: Optional[datetime.date] = None,
        billing_address: Optional[Dict[str, str]] = None,
        shipping_address: Optional[Dict[str, str]] = None,
        initial_payment_only: bool = False,
    ) -> Optional[Order]:
        """
        Create an order.

        Args:
            user_uuid: User to create the order for
            group_uuid: Group to create the order under; the payee group is
                used instead if this group is not the payee
            line_items: Line items, each with product_uuid and optionally
                quantity (default 1), for_user_uuid, installment_plan,
                role_uuid, sold_by_uuid, creator_uuid and invoice
            order_status: Initial status of the order
            created: Creation time, now when omitted
            due_date: Due date if the order is an invoice, today when omitted
            billing_address: street_1, street_2, city, state, zip, country
                (ISO 3166-1 code), first_name, last_name
            shipping_address: Same format, defaults to the billing address
            initial_payment_only: With an installment plan, only create the
                order for the initial payment

        Returns:
            The created order
        """
        params = {
            'user_uuid': user_uuid,
            'group_uuid': group_uuid,
            'order_status': order_status,
            'line_items': line_items,
            'created': format_date(created, utc=True),
            'due_date': format_date(due_date),
            'billing_address': billing_address,
            'shipping_address': shipping_address,
            'initial_payment_only': initial_payment_only,
        }
        return _one(Order, self.post('orders', compact(params)))

    def order_add_payment(
        self,
        order_uuid: str,
        payment_type: str,
        payment_amount: Union[str, float],
        payment_details: Optional[Dict[str, Any]] = None,
        created: Optional[datetime.datetime] = None,
    ) -> Optional[Payment]:
        """
        Apply a payment to an order.

        Args:
            order_uuid: Order the payment applies to
            payment_type: in_person, ad_hoc, ...
            payment_amount: Amount of the payment
            payment_details: Additional details for the payment type
            created: Time of the payment, now when omitted

        Returns:
            Payment with the transaction_id and any instructions the user
            needs to complete the payment
        """
        params = {
            'payment_type': payment_type,
            'payment_amount': payment_amount,
            'payment_details': payment_details,
            'created': format_datetime(created),
        }
        return _one(Payment, self.post(f"orders/{order_uuid}/add_payment", compact(params)))

    def order_add_installment_invoice(self, order_uuid: str, series_id: int, created: datetime.datetime) -> Optional[Order]:
        """
        Create the invoice of one installment.

        Args:
            order_uuid: Order with the installment plan
            series_id: Installment number, 0 to number of installments - 1
            created: When the invoice was created
        """
        params = {
            'series_id': series_id,
            'created': format_datetime(created),
        }
        return _one(Order, self.post(f"orders/{order_uuid}/add_installment_invoice", params))

    # Products

    def product_get(self, uuid: str) -> Optional[Product]:
        return _one(Product, self.get(f"products/{uuid}"))

    def product_create(
        self,
        type: str,
        group_uuid: str,
        role_id: Optional[int] = None,
        role_name: Optional[str] = None,
        installments_enabled: int = 0,
        initial_payment: float = 0,
        installments: Optional[List[Dict[str, Any]]] = None,
        total: float = 0,
        sku: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Optional[Product]:
        """
        Create a product in a group.

        Args:
            type: Product type
            group_uuid: Group owning the product
            role_id: Role the product is created for
            role_name: Name of that role
            installments_enabled: Allow purchase with installments
            initial_payment: Price of the first payment with installments
            installments: Payments, each a dict with a due_date (date) and
                an amount
            total: Full price without installments
            sku: Required for "product" products
            title: Required for "product" products

        Raises:
            ValueError: If an installment due date is not a date
        """
        formatted = []
        for installment in installments or []:
            due_date = installment.get('due_date')
            if not isinstance(due_date, datetime.date):
                raise ValueError("Installment due date must be a date or datetime")
            formatted.append({**installment, 'due_date': format_date(due_date)})

        params = {
            'type': type,
            'group_uuid': group_uuid,
            'role_id': role_id,
            'role_name': role_name,
            'installments_enabled': installments_enabled,
            'initial_payment': initial_payment,
            'installments': formatted,
            'total': total,
            'sku': sku,
            'title': title,
        }
        return _one(Product, self.post('products', compact(params)))
