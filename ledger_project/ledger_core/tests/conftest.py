import pytest

from .helpers import make_business, make_chart


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(username="bob", password="pw")


@pytest.fixture
def business(db):
    business, _ = make_business("Fixture Co")
    return business


@pytest.fixture
def financial_year(business):
    return business.financialyear_set.get(is_current=True)


@pytest.fixture
def chart(business):
    return make_chart(business)
