"""Curated fallback question banks.

Used whenever the generative path yields nothing usable.  Each bank is a
set of templates; ``fallback_questions()`` materializes fresh Question
objects (new ids) on every call so two quizzes never share question ids.
"""

from __future__ import annotations

import random
import re
from typing import NamedTuple

from app.models.question import (
    ChoiceQuestion,
    Difficulty,
    Question,
    QuestionOption,
    TextQuestion,
)


class _Template(NamedTuple):
    kind: str
    prompt: str
    options: tuple[str, ...]
    answer: int | str  # option index for choice kinds, text otherwise
    explanation: str
    points: float
    difficulty: Difficulty

    def build(self, position: int) -> Question:
        if self.kind == "short-answer":
            return TextQuestion(
                kind="short-answer",
                prompt=self.prompt,
                correct_answer=str(self.answer),
                explanation=self.explanation,
                points=self.points,
                difficulty=self.difficulty,
                position=position,
            )
        return ChoiceQuestion(
            kind=self.kind,  # type: ignore[arg-type]
            prompt=self.prompt,
            options=tuple(
                QuestionOption.new(text=text, is_correct=i == self.answer)
                for i, text in enumerate(self.options)
            ),
            explanation=self.explanation,
            points=self.points,
            difficulty=self.difficulty,
            position=position,
        )


def _mc(prompt, options, answer, explanation, points, difficulty) -> _Template:
    return _Template("multiple-choice", prompt, tuple(options), answer, explanation, points, difficulty)


def _tf(prompt, answer: bool, explanation, points, difficulty) -> _Template:
    return _Template(
        "true-false", prompt, ("True", "False"), 0 if answer else 1, explanation, points, difficulty
    )


def _sa(prompt, answer, explanation, points, difficulty) -> _Template:
    return _Template("short-answer", prompt, (), answer, explanation, points, difficulty)


# ---------------------------------------------------------------------------
# Banks
# ---------------------------------------------------------------------------

JAVASCRIPT_BANK: tuple[_Template, ...] = (
    _mc(
        "What is the output of: console.log(typeof null)?",
        ["null", "undefined", "object", "NullType"],
        2,
        'typeof null returns "object" - this is a known JavaScript bug from the first implementation.',
        2,
        "hard",
    ),
    _mc(
        "What will [1, 2, 3].map(parseInt) return?",
        ["[1, 2, 3]", "[1, NaN, NaN]", "[NaN, NaN, NaN]", "Error"],
        1,
        "map passes (value, index, array) to callback. parseInt uses the index as radix, causing unexpected results.",
        2,
        "hard",
    ),
    _mc(
        "Which method does NOT mutate the original array?",
        ["push()", "splice()", "map()", "sort()"],
        2,
        "map() returns a new array without modifying the original. push, splice, and sort mutate the array.",
        1,
        "medium",
    ),
    _mc(
        "What is the difference between == and === in JavaScript?",
        [
            "No difference",
            "=== checks type and value, == only checks value with type coercion",
            "== is faster than ===",
            "=== is deprecated",
        ],
        1,
        "=== (strict equality) checks both type and value without coercion.",
        1,
        "easy",
    ),
    _tf(
        'In JavaScript, "let" and "const" are hoisted but not initialized (temporal dead zone).',
        True,
        "let/const are hoisted but accessing them before declaration causes ReferenceError (TDZ).",
        1,
        "medium",
    ),
    _tf(
        'Arrow functions have their own "this" context.',
        False,
        'Arrow functions inherit "this" from the enclosing scope (lexical this).',
        1,
        "medium",
    ),
    _sa(
        "What keyword is used to handle errors in async/await?",
        "try-catch",
        "try-catch blocks are used to handle errors in async/await code.",
        2,
        "easy",
    ),
    _mc(
        "What is the time complexity of Array.prototype.includes()?",
        ["O(1)", "O(n)", "O(log n)", "O(n²)"],
        1,
        "includes() iterates through the array, making it O(n) linear time.",
        2,
        "medium",
    ),
    _sa(
        "What method converts a JSON string to a JavaScript object?",
        "JSON.parse",
        "JSON.parse() parses a JSON string and returns a JavaScript object.",
        1,
        "easy",
    ),
    _mc(
        "Which statement about closures is TRUE?",
        [
            "Closures can only access global variables",
            "A closure gives access to an outer function's scope from an inner function",
            "Closures are created only with arrow functions",
            "Closures prevent garbage collection of all variables",
        ],
        1,
        "A closure is created when an inner function has access to variables from its outer function's scope.",
        2,
        "medium",
    ),
)

REACT_BANK: tuple[_Template, ...] = (
    _mc(
        "What happens when you call setState() in React?",
        [
            "Component re-renders immediately synchronously",
            "State update is batched and component may re-render asynchronously",
            "Only the changed value updates without re-render",
            "Parent component re-renders first",
        ],
        1,
        "React batches state updates for performance and re-renders asynchronously.",
        2,
        "medium",
    ),
    _mc(
        "useEffect with an empty dependency array [] is equivalent to:",
        ["componentDidUpdate", "componentDidMount", "componentWillUnmount", "shouldComponentUpdate"],
        1,
        "useEffect with [] runs once after initial render, like componentDidMount.",
        1,
        "easy",
    ),
    _mc(
        "Why should you NOT call hooks inside loops, conditions, or nested functions?",
        [
            "It causes syntax errors",
            "React relies on call order to track hooks between renders",
            "Hooks only work at component level",
            "It makes the code slower",
        ],
        1,
        "React uses hook call order to associate state with components. Conditional calls break this.",
        2,
        "hard",
    ),
    _tf(
        "In React, keys help identify which items have changed, are added, or removed.",
        True,
        "Keys give elements a stable identity for efficient reconciliation.",
        1,
        "easy",
    ),
    _tf(
        "useCallback and useMemo serve the exact same purpose.",
        False,
        "useCallback memoizes functions, useMemo memoizes computed values.",
        1,
        "medium",
    ),
    _sa(
        "What hook is used to access context values in functional components?",
        "useContext",
        "useContext hook allows functional components to consume context.",
        1,
        "easy",
    ),
    _mc(
        "What is the Virtual DOM?",
        [
            "A browser API for faster rendering",
            "A lightweight copy of the real DOM for efficient updates",
            "A CSS optimization technique",
            "A database for storing component state",
        ],
        1,
        "Virtual DOM is a JS representation of the real DOM that React uses to compute minimal updates.",
        1,
        "medium",
    ),
    _sa(
        "What function is used to create a reference to a DOM element in React?",
        "useRef",
        "useRef creates a mutable ref object to access DOM elements directly.",
        2,
        "easy",
    ),
    _mc(
        "Which is TRUE about React.memo()?",
        [
            "It memoizes component state",
            "It prevents re-render if props haven't changed (shallow comparison)",
            "It replaces shouldComponentUpdate completely",
            "It only works with class components",
        ],
        1,
        "React.memo is a HOC that skips re-render if props are shallowly equal.",
        2,
        "medium",
    ),
    _mc(
        "What causes an infinite loop with useEffect?",
        [
            "Not returning a cleanup function",
            "Updating state that is in the dependency array without conditions",
            "Using async functions directly",
            "Having too many dependencies",
        ],
        1,
        "If you update a dependency inside useEffect without conditions, it triggers infinite re-renders.",
        2,
        "hard",
    ),
)

DSA_BANK: tuple[_Template, ...] = (
    _mc(
        "What is the time complexity of binary search?",
        ["O(n)", "O(log n)", "O(n log n)", "O(1)"],
        1,
        "Binary search halves the search space each iteration, giving O(log n).",
        1,
        "easy",
    ),
    _mc(
        "Which data structure uses LIFO (Last In, First Out)?",
        ["Queue", "Stack", "Linked List", "Heap"],
        1,
        "Stack follows LIFO - the last element added is the first to be removed.",
        1,
        "easy",
    ),
    _mc(
        "What is the worst-case time complexity of QuickSort?",
        ["O(n)", "O(n log n)", "O(n²)", "O(log n)"],
        2,
        "QuickSort degrades to O(n²) when the pivot selection is poor (already sorted array).",
        2,
        "medium",
    ),
    _mc(
        "Which algorithm is best for finding shortest path in unweighted graph?",
        ["DFS", "BFS", "Dijkstra", "Bellman-Ford"],
        1,
        "BFS explores level by level, guaranteeing shortest path in unweighted graphs.",
        2,
        "medium",
    ),
    _tf(
        "A balanced BST has O(log n) search time complexity.",
        True,
        "Balanced BST maintains height ~log n, giving O(log n) search.",
        1,
        "easy",
    ),
    _tf(
        "HashMaps always have O(1) time complexity for operations.",
        False,
        "Average case is O(1), but worst case (many collisions) is O(n).",
        1,
        "medium",
    ),
    _sa(
        "What is the space complexity of merge sort?",
        "O(n)",
        "Merge sort requires O(n) auxiliary space for merging.",
        2,
        "medium",
    ),
    _mc(
        "Which traversal of BST gives sorted output?",
        ["Preorder", "Inorder", "Postorder", "Level order"],
        1,
        "Inorder traversal (left-root-right) of BST produces sorted sequence.",
        1,
        "medium",
    ),
    _sa(
        "What data structure is used to implement recursion internally?",
        "stack",
        "The call stack stores function calls and local variables during recursion.",
        2,
        "easy",
    ),
    _mc(
        "What is the time complexity of inserting at the beginning of an ArrayList?",
        ["O(1)", "O(n)", "O(log n)", "O(n²)"],
        1,
        "Inserting at beginning requires shifting all elements, making it O(n).",
        2,
        "hard",
    ),
)

PYTHON_BANK: tuple[_Template, ...] = (
    _mc(
        "What is the output of: print([1,2,3][-1])?",
        ["1", "3", "Error", "-1"],
        1,
        "Negative indexing in Python accesses from the end. -1 is the last element.",
        1,
        "easy",
    ),
    _mc(
        "What is the difference between a list and a tuple in Python?",
        [
            "Lists are faster",
            "Tuples are mutable, lists are not",
            "Lists are mutable, tuples are immutable",
            "No difference",
        ],
        2,
        "Lists can be modified after creation, tuples cannot.",
        1,
        "easy",
    ),
    _mc(
        'What does the "self" parameter represent in a class method?',
        ["The class itself", "The instance of the class", "A required Python keyword", "The parent class"],
        1,
        "self refers to the current instance of the class.",
        1,
        "medium",
    ),
    _tf(
        "In Python, dictionaries maintain insertion order (Python 3.7+).",
        True,
        "Since Python 3.7, dicts officially maintain insertion order.",
        1,
        "medium",
    ),
    _sa(
        "What keyword is used to define a generator function in Python?",
        "yield",
        "yield makes a function a generator, returning values lazily.",
        2,
        "medium",
    ),
    _mc(
        "What is a decorator in Python?",
        [
            "A way to add comments",
            "A function that modifies another function",
            "A type of loop",
            "A class inheritance method",
        ],
        1,
        "Decorators wrap functions to extend their behavior without modifying them.",
        2,
        "medium",
    ),
    _mc(
        "What does *args allow in a function definition?",
        [
            "Pass a dictionary",
            "Pass any number of positional arguments",
            "Make arguments optional",
            "Define default values",
        ],
        1,
        "*args collects extra positional arguments as a tuple.",
        1,
        "medium",
    ),
    _tf(
        "List comprehensions are generally faster than equivalent for loops in Python.",
        True,
        "List comprehensions are optimized at C level, making them faster.",
        1,
        "hard",
    ),
    _sa(
        "What built-in function returns the length of an object?",
        "len",
        "len() returns the number of items in a sequence or collection.",
        1,
        "easy",
    ),
    _mc(
        "What is the GIL in Python?",
        [
            "A graphics library",
            "Global Interpreter Lock - prevents true multi-threading",
            "A garbage collector",
            "A package manager",
        ],
        1,
        "GIL allows only one thread to execute Python bytecode at a time.",
        2,
        "hard",
    ),
)

WEBDEV_BANK: tuple[_Template, ...] = (
    _mc(
        'Which HTTP status code indicates "Not Found"?',
        ["200", "404", "500", "302"],
        1,
        "404 indicates the requested resource was not found on the server.",
        1,
        "easy",
    ),
    _mc(
        'What is the purpose of the "alt" attribute in an <img> tag?',
        [
            "Styling the image",
            "Alternative text for accessibility and when image fails to load",
            "Adding animation",
            "Linking to another page",
        ],
        1,
        "alt provides text description for screen readers and when images don't load.",
        1,
        "easy",
    ),
    _mc(
        "What is CORS?",
        [
            "A CSS framework",
            "Cross-Origin Resource Sharing - security mechanism for cross-domain requests",
            "A JavaScript library",
            "A database protocol",
        ],
        1,
        "CORS allows or restricts web pages from making requests to different domains.",
        2,
        "medium",
    ),
    _tf(
        "localStorage data persists even after the browser is closed.",
        True,
        "localStorage has no expiration, unlike sessionStorage which clears on tab close.",
        1,
        "easy",
    ),
    _tf(
        "REST APIs must always use JSON format for data exchange.",
        False,
        "REST can use any format (JSON, XML, plain text). JSON is just popular.",
        1,
        "medium",
    ),
    _sa(
        "What HTTP method is typically used to update an existing resource?",
        "PUT",
        "PUT is used to update/replace a resource. PATCH is for partial updates.",
        1,
        "medium",
    ),
    _mc(
        "What is XSS?",
        [
            "Extra Style Sheets",
            "Cross-Site Scripting - injecting malicious scripts",
            "XML Secure Socket",
            "Extended Server System",
        ],
        1,
        "XSS attacks inject malicious scripts into trusted websites.",
        2,
        "medium",
    ),
    _mc(
        "Which is NOT a valid CSS position value?",
        ["relative", "absolute", "static", "float"],
        3,
        "float is a separate CSS property, not a position value.",
        2,
        "medium",
    ),
    _sa(
        "What CSS property is used to create flexible layouts?",
        "flexbox",
        "display: flex creates a flex container for flexible layouts.",
        2,
        "easy",
    ),
    _mc(
        'What does the "async" attribute do on a script tag?',
        [
            "Makes the script run synchronously",
            "Downloads script asynchronously and executes immediately when ready",
            "Delays script until page loads",
            "Prevents script from running",
        ],
        1,
        "async downloads the script without blocking and executes as soon as it's ready.",
        2,
        "hard",
    ),
)


def default_bank(title: str, category: str = "") -> tuple[_Template, ...]:
    subject = category or "Main Subject"
    return (
        _mc(
            f'What is the primary focus of "{title}"?',
            [subject, "Unrelated Topic A", "Unrelated Topic B", "None of the above"],
            0,
            f"This course focuses on {category or 'the main subject'}",
            1,
            "easy",
        ),
        _tf(
            "Practical application of concepts is important for mastering any subject.",
            True,
            "Practice helps reinforce theoretical knowledge.",
            1,
            "easy",
        ),
        _sa(
            "What is the title of this course?",
            title,
            f'The course is titled "{title}"',
            1,
            "easy",
        ),
    )


BANKS: dict[str, tuple[_Template, ...]] = {
    "javascript": JAVASCRIPT_BANK,
    "react": REACT_BANK,
    "dsa": DSA_BANK,
    "python": PYTHON_BANK,
    "webdev": WEBDEV_BANK,
}

_JS_TOKEN = re.compile(r"\bjs\b")


def detect_topic(title: str, category: str = "") -> str:
    """Pick a bank name from the course title/category.  First match wins."""
    t = title.lower()
    c = (category or "").lower()
    if "javascript" in t or _JS_TOKEN.search(t) or "javascript" in c:
        return "javascript"
    if "react" in t or "react" in c:
        return "react"
    if "data structure" in t or "algorithm" in t or "dsa" in t:
        return "dsa"
    if "python" in t or "python" in c:
        return "python"
    if "web" in t or "html" in t or "css" in t or "web" in c:
        return "webdev"
    return "default"


def fallback_questions(
    title: str,
    category: str = "",
    count: int = 10,
    *,
    rng: random.Random | None = None,
) -> list[Question]:
    """Shuffle the matching bank and return up to ``count`` fresh questions."""
    topic = detect_topic(title, category)
    templates = list(BANKS.get(topic) or default_bank(title, category))
    (rng or random).shuffle(templates)
    picked = templates[: max(0, min(count, len(templates)))]
    return [t.build(position=i) for i, t in enumerate(picked)]
