from __future__ import annotations

import pytest

from registry.domain import (
    DuplicateKeyError,
    Email,
    NotFoundError,
    Person,
    Phone,
    PhoneType,
    PostalAddress,
    ReferentialIntegrityError,
    StaleDocumentError,
    User,
)
from registry.security.passwords import PASSWORD_ENCODER


def _register(repos, login_name: str, password: str) -> User:
    user = User(login_name)
    user.set_password(password)
    return repos.users.save(user)


def _jane_doe(repos) -> Person:
    us = repos.countries.find_by_alpha2_code("US")
    owner = Person("Doe", "Jane", "G", "Ms", "M.D.")
    owner.add_contact(Email("jane.doe@gmail.com"), True)
    owner.add_contact(Email("jane.doe@yahoo.com"))
    owner.add_contact(Email("jane.doe@msn.com"), True)
    owner.add_contact(Phone(PhoneType.land, "508-654-8675", us), True)
    owner.add_contact(Phone(PhoneType.mobile, "978-545-4563", us))
    owner.add_contact(Phone(PhoneType.office, "603-563-6565", us))
    zip01581 = repos.postal_codes.read_one(us, "01581")
    zip01721 = repos.postal_codes.read_one(us, "01721")
    owner.add_contact(PostalAddress(["456 Main St"], zip01581, us))
    owner.add_contact(PostalAddress(["Apt #1234", "1900 Worcester Rd"], zip01721, us), True)
    return repos.persons.save(owner)


@pytest.fixture
def populated(repos):
    _register(repos, "alice", "abc1234")
    _register(repos, "bob", "xyz0987")
    jane = User("jane")
    jane.set_password("ghi3456")
    jane.account.add_primary_owner(_jane_doe(repos))
    repos.users.save(jane)
    return repos


def test_duplicate_login_name_is_rejected(populated):
    original = populated.users.find_by_login_name("alice")

    with pytest.raises(DuplicateKeyError):
        _register(populated, "alice", "abcdefg")

    alice = populated.users.find_by_login_name("alice")
    assert alice == original
    assert PASSWORD_ENCODER.matches("abc1234", alice.password)


def test_reading_users_back(populated):
    alice1 = populated.users.find_by_login_name("alice")
    alice2 = populated.users.find_by_login_name("alice")
    bob = populated.users.find_by_login_name("bob")

    assert PASSWORD_ENCODER.matches("abc1234", alice1.password)
    assert alice1.is_registered
    assert alice2 == alice1
    assert bob != alice1
    assert populated.users.find_by_login_name("Alice") is None


def test_reading_primary_contacts(populated):
    jane = populated.users.find_by_login_name("jane")
    person = jane.account.primary_owner

    assert person.formal_name == "Ms. Doe, Jane G., M.D."
    assert str(person.primary_email) == "jane.doe@msn.com"
    assert str(person.primary_postal_address) == (
        "Apt #1234, 1900 Worcester Rd, Ashland, MA 01721, United States of America"
    )
    assert str(person.primary_phone) == "(1) 508-654-8675 (land)"
    assert len(person.contacts_of(Email)) == 3
    assert len(person.contacts_of(Phone)) == 3
    assert len(person.contacts_of(PostalAddress)) == 2

    mobile = next(phone for phone in person.contacts_of(Phone) if phone.type == PhoneType.mobile)
    assert str(mobile) == "(1) 978-545-4563 (mobile)"


def test_updating_account_owners(populated):
    us = populated.countries.find_by_alpha2_code("US")
    zip90210 = populated.postal_codes.read_one(us, "90210")
    owner = Person("Dylan", "Thomas", "Tyle", "Mr")
    owner.add_contact(Email("bdylan@gmail.com"))
    owner.add_contact(Phone(PhoneType.mobile, "978-343-5555", us))
    owner.add_contact(PostalAddress(["666 Fancy Lane"], zip90210, us))
    populated.persons.save(owner)

    bob = populated.users.find_by_login_name("bob")
    bob.account.add_primary_owner(owner)
    populated.users.save(bob)
    assert str(populated.users.find_by_login_name("bob").account.primary_owner.primary_phone) == (
        "(1) 978-343-5555 (mobile)"
    )

    jane = populated.users.find_by_login_name("jane")
    jane.account.add_primary_owner(owner)
    populated.users.save(jane)

    reloaded = populated.users.find_by_login_name("jane")
    assert reloaded.account.primary_owner.formal_name == "Mr. Dylan, Thomas Tyle"

    previous = reloaded.account.owners[1]
    reloaded.account.add_primary_owner(previous)
    populated.users.save(reloaded)

    reloaded = populated.users.find_by_login_name("jane")
    assert reloaded.account.primary_owner.formal_name == "Ms. Doe, Jane G., M.D."
    assert [p.formal_name for p in reloaded.account.owners] == [
        "Ms. Doe, Jane G., M.D.",
        "Mr. Dylan, Thomas Tyle",
    ]


def test_deleting_user(populated):
    alice = populated.users.find_by_login_name("alice")
    populated.users.delete(alice)

    assert populated.users.find_by_login_name("alice") is None
    populated.users.delete(alice)


def test_delete_all_clears_collection(populated):
    populated.users.delete_all()
    assert populated.users.find_all() == []
    assert populated.persons.find_all()


def test_stale_user_write_is_rejected(populated):
    first = populated.users.find_by_login_name("bob")
    second = populated.users.find_by_login_name("bob")
    person = populated.persons.save(Person("Dylan", "Thomas", "Tyle", "Mr"))

    first.account.add_primary_owner(person)
    populated.users.save(first)

    second.set_password("changed")
    with pytest.raises(StaleDocumentError):
        populated.users.save(second)
    assert populated.users.find_by_login_name("bob").check_password("xyz0987")


def test_saving_user_with_unsaved_owner(populated):
    bob = populated.users.find_by_login_name("bob")
    bob.account.add_primary_owner(Person("Nobody", "Ann"))

    with pytest.raises(ReferentialIntegrityError):
        populated.users.save(bob)
    assert populated.users.find_by_login_name("bob").account.owners == []


def test_loading_user_with_deleted_owner(populated):
    jane = populated.users.find_by_login_name("jane")
    populated.persons.delete(jane.account.primary_owner)

    with pytest.raises(ReferentialIntegrityError):
        populated.users.find_by_login_name("jane")
    assert populated.users.delete_by_login_name("jane")
    assert not populated.users.delete_by_login_name("jane")


def test_country_finders(repos):
    us = repos.countries.find_by_alpha2_code("US")

    assert repos.countries.find_by_name("United States of America") == us
    assert repos.countries.find_by_alpha3_code("USA") == us
    assert repos.countries.find_by_numeric_code("840") == us
    assert repos.countries.find_by_iso_code("ISO 3166-2:US") == us
    assert repos.countries.find_by_alpha2_code("us") is None
    assert repos.countries.get(us.id) == us


def test_country_codes_are_unique(repos):
    canada = repos.countries.find_by_alpha2_code("CA")
    clash = repos.countries.find_by_alpha2_code("MX")
    clash.alpha3_code = canada.alpha3_code

    with pytest.raises(DuplicateKeyError) as info:
        repos.countries.save(clash)
    assert info.value.fields == ("alpha3_code",)
    assert repos.countries.find_by_alpha2_code("MX").alpha3_code == "MEX"


def test_postal_code_lookup(repos):
    us = repos.countries.find_by_alpha2_code("US")
    canada = repos.countries.find_by_alpha2_code("CA")

    ashland = repos.postal_codes.read_one(us, "01721")
    assert (ashland.city, ashland.state) == ("Ashland", "MA")
    assert repos.postal_codes.find_by_country_and_code(canada, "01721") is None
    with pytest.raises(NotFoundError):
        repos.postal_codes.read_one(canada, "01721")
