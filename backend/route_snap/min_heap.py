from __future__ import annotations


class MinHeap:
    """Binary min-heap of integer values keyed by a float priority.

    Entries with equal priority come out in insertion order: every entry
    carries a strictly increasing sequence number that breaks ties in both
    sift directions.
    """

    __slots__ = ("_heap", "_counter")

    def __init__(self) -> None:
        # (priority, sequence, value)
        self._heap: list[tuple[float, int, int]] = []
        self._counter = 0

    def insert(self, priority: float, value: int) -> None:
        node = (priority, self._counter, value)
        self._counter += 1
        heap = self._heap
        idx = len(heap)
        heap.append(node)

        while idx > 0:
            parent_idx = (idx - 1) >> 1
            parent = heap[parent_idx]
            if priority > parent[0] or (priority == parent[0] and node[1] > parent[1]):
                break
            heap[idx] = parent
            idx = parent_idx
        heap[idx] = node

    def extract_min(self) -> int | None:
        heap = self._heap
        if not heap:
            return None

        min_node = heap[0]
        end_node = heap.pop()
        if heap:
            heap[0] = end_node
            self._sift_down(0)
        return min_node[2]

    def size(self) -> int:
        return len(self._heap)

    def __len__(self) -> int:
        return len(self._heap)

    def _sift_down(self, idx: int) -> None:
        heap = self._heap
        length = len(heap)
        node = heap[idx]

        while True:
            left_idx = (idx << 1) + 1
            right_idx = left_idx + 1
            smallest_idx = idx
            smallest = node

            if left_idx < length:
                left = heap[left_idx]
                if left[0] < smallest[0] or (left[0] == smallest[0] and left[1] < smallest[1]):
                    smallest_idx, smallest = left_idx, left

            if right_idx < length:
                right = heap[right_idx]
                if right[0] < smallest[0] or (right[0] == smallest[0] and right[1] < smallest[1]):
                    smallest_idx, smallest = right_idx, right

            if smallest_idx == idx:
                break

            heap[idx] = smallest
            heap[smallest_idx] = node
            idx = smallest_idx
