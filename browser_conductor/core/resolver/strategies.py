"""
Candidate generators for each selector strategy
"""

from typing import Callable

from browser_conductor.core.resolver.views import SelectorStrategy


def escape_quotes(value: str) -> str:
	return value.replace('\\', '\\\\').replace('"', '\\"')


def _exact(description: str) -> str:
	return description


def _text(description: str) -> str:
	return f"text={description}"


def _attribute_contains(attribute: str) -> Callable[[str], str]:
	def build(description: str) -> str:
		return f'[{attribute}*="{escape_quotes(description)}" i]'
	return build


def _has_text(tag: str) -> Callable[[str], str]:
	def build(description: str) -> str:
		return f'{tag}:has-text("{escape_quotes(description)}")'
	return build


SELECTOR_BUILDERS: dict[SelectorStrategy, Callable[[str], str]] = {
	SelectorStrategy.EXACT_SELECTOR: _exact,
	SelectorStrategy.TEXT_MATCH: _text,
	SelectorStrategy.ARIA_LABEL: _attribute_contains("aria-label"),
	SelectorStrategy.TITLE: _attribute_contains("title"),
	SelectorStrategy.PLACEHOLDER: _attribute_contains("placeholder"),
	SelectorStrategy.BUTTON_WITH_TEXT: _has_text("button"),
	SelectorStrategy.LINK_WITH_TEXT: _has_text("a"),
	SelectorStrategy.ANY_WITH_TEXT: _has_text("*"),
}

# Enum declaration order is the precedence order
STRATEGY_ORDER: list[SelectorStrategy] = list(SelectorStrategy)


def build_selector(strategy: SelectorStrategy, description: str) -> str:
	return SELECTOR_BUILDERS[strategy](description)


# Scans every element under <body>; returns at most `limit` matches
SUGGEST_ALTERNATIVES_JS = """
({ needle, limit }) => {
	const query = needle.toLowerCase();
	const matches = [];
	const fields = [
		['text', el => el.textContent || ''],
		['aria-label', el => el.getAttribute('aria-label') || ''],
		['title', el => el.getAttribute('title') || ''],
		['placeholder', el => el.getAttribute('placeholder') || ''],
		['name', el => el.getAttribute('name') || ''],
		['id', el => el.id || ''],
		['class', el => (typeof el.className === 'string' ? el.className : '')],
	];
	for (const el of document.querySelectorAll('body *')) {
		if (matches.length >= limit) break;
		let matchedBy = null;
		for (const [field, read] of fields) {
			if (read(el).toLowerCase().includes(query)) {
				matchedBy = field;
				break;
			}
		}
		if (!matchedBy) continue;
		const tag = el.tagName.toLowerCase();
		const classes = (typeof el.className === 'string' ? el.className : '').trim().split(/\\s+/).filter(Boolean);
		let selector = tag;
		if (el.id) selector = '#' + el.id;
		else if (el.getAttribute('name')) selector = `[name="${el.getAttribute('name')}"]`;
		else if (classes.length) selector = tag + '.' + classes.join('.');
		matches.push({
			tag: tag,
			text: ((el.textContent || '').trim() || el.outerHTML).slice(0, 50),
			selector: selector,
			matched_by: matchedBy,
		});
	}
	return matches;
}
"""
