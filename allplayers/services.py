"""
Typed wrappers around the core API client.

Each function takes the Client to use as its first argument and works with
the User and Group models instead of raw JSON.
"""

import logging

from .client import Client, compact
from .constants import DATE_FORMAT
from .exceptions import NotFoundError
from .models import Group, User

logger = logging.getLogger(__name__)


def login_user(client: Client, user: User):
    """
    Log a user into the API.

    Raises:
        BadResponseError: If the credentials are rejected
    """
    client.user_login(user.email, user.password)


def create_user(client: Client, user: User) -> User:
    """
    Create the user represented by User.

    Args:
        client: Client handling the request
        user: The user to create, with no UUID set

    Returns:
        The same user with its UUID populated
    """
    response = client.user_create_user(
        user.first_name,
        user.last_name,
        user.email,
        'M' if user.gender == 'Male' else 'F',
        user.birthdate.strftime(DATE_FORMAT),
        user.password,
    )
    user.uuid = response['uuid']
    logger.debug("Created user %s", user.uuid)
    return user


def get_user(client: Client, uuid: str) -> User:
    return User.from_api(client.user_get_user(uuid))


def get_user_by_email(client: Client, email: str) -> User:
    """
    Look a user up by email address.

    Raises:
        NotFoundError: If no user has this email
        BadResponseError: If the lookup itself fails
    """
    response = client.users_index({'email': email})
    if not response:
        raise NotFoundError(f'User with email "{email}" was not found.')
    return User.from_api(response[-1])


def create_group(client: Client, group: Group) -> Group:
    """Create the group represented by Group and populate its UUID."""
    params = {
        'title': group.title,
        'description': group.description,
        'location': {'zip': group.zip},
        'category': [group.category],
        'web_address': group.purl,
    }
    response = client.group_create(compact(params))
    group.uuid = response['uuid']
    return group
