"""
reset_data.py
-------------
Clear every stored record (users, vehicles, bookings, blocks, maintenance,
notifications) from the local pickle file.

Usage:
    $ python reset_data.py

Repopulate demo data afterwards with:
    $ python seeds.py
"""

from carrental.models.store import Store


def main():
    store = Store.instance()
    store.clear()

    print(f"{store.path} has been cleared.")
    print("Tip: run `python seeds.py` to regenerate demo data.")


if __name__ == "__main__":
    main()
