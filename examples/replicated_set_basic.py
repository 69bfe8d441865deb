"""Replicated set walkthrough: two replicas, one concurrent add each, one remove.

Architecture::

    add(5) ──► replica-0 ◄──merge──► replica-1 ◄── add(7)

Demonstrates:
1. Each replica accepts adds without coordination.
2. A merge in each direction makes both replicas hold {5, 7}.
3. Replica 0 removes 5 and reports it gone immediately.
4. Two more exchanges carry the remove to replica 1 and let both
   replicas forget the tombstone once it is causally stable.
"""

from causalset import ReplicatedSet, enable_console_logging


def show(label: str, *replicas: ReplicatedSet) -> None:
    print(label)
    for replica in replicas:
        print(f"  replica-{replica.self_index}: values={sorted(replica.values())}")
        print(f"    {replica}")
    print()


def exchange(a: ReplicatedSet, b: ReplicatedSet) -> None:
    a.merge_in(b.deep_copy())
    b.merge_in(a.deep_copy())


def main(verbose: bool = False):
    if verbose:
        enable_console_logging(level="DEBUG")

    r0 = ReplicatedSet(2, 0)
    r1 = ReplicatedSet(2, 1)

    r0.add(5)
    r1.add(7)
    show("After concurrent adds:", r0, r1)

    exchange(r0, r1)
    show("After one exchange:", r0, r1)

    r0.remove(5)
    show("After replica-0 removes 5:", r0, r1)

    exchange(r0, r1)
    show("After second exchange:", r0, r1)

    exchange(r0, r1)
    show("After third exchange:", r0, r1)

    print("=" * 60)
    print(f"Converged: {r0 == r1}")
    print(f"Final values: {sorted(r0.values())}")
    print(f"Tombstones left: {r0.tombstone_count + r1.tombstone_count}")
    print()
    for replica in (r0, r1):
        stats = replica.stats
        print(f"replica-{replica.self_index} stats:")
        print(f"  Adds: {stats.adds}")
        print(f"  Removes: {stats.removes}")
        print(f"  Merges: {stats.merges}")
        print(f"  Timestamps discarded: {stats.timestamps_discarded}")
        print(f"  Tombstones pruned: {stats.tombstones_pruned}")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Replicated set walkthrough")
    parser.add_argument("--verbose", action="store_true", help="log every merge")
    args = parser.parse_args()
    main(verbose=args.verbose)
