"""JavaScript injected into the chat page.

``BRIDGE_SCRIPT`` installs ``window.__codelink``: page queries, composer
operations, the dropdown and notification elements. ``listen()`` adds the
listeners that forward trusted user events to Python through the
``__codelinkEmit`` binding; ``detach()`` removes them again.
"""

BINDING_NAME = "__codelinkEmit"

BRIDGE_SCRIPT = r"""
(() => {
  if (window.__codelink) return;

  const SURFACE_SELECTOR = '#prompt-textarea';
  const DROPDOWN_CLASS = 'codelink-file-dropdown';
  const NOTIFICATION_CLASS = 'codelink-notification';
  const STYLE_ID = 'codelink-dropdown-styles';
  const NAV_KEYS = new Set(['ArrowDown', 'ArrowUp', 'Enter', 'Tab', 'Escape']);
  const BLOCKS = new Set(['P', 'DIV', 'LI', 'PRE', 'BLOCKQUOTE', 'H1', 'H2', 'H3', 'H4', 'H5', 'H6']);
  const MUTATION_THROTTLE_MS = 100;

  let nextSurfaceId = 1;
  let dropdown = null;
  let notification = null;
  let notificationTimer = null;
  let mutationTimer = null;

  const emit = (event, payload) => {
    const binding = window.__codelinkEmit;
    if (typeof binding === 'function') {
      binding(event, payload || {}).catch(() => {});
    }
  };

  const isOwn = (node) => {
    const el = node && (node.nodeType === Node.ELEMENT_NODE ? node : node.parentElement);
    return !!(el && el.closest('.' + DROPDOWN_CLASS + ', .' + NOTIFICATION_CLASS + ', #' + STYLE_ID));
  };

  const dropdownVisible = () => !!dropdown && dropdown.style.display !== 'none';

  // -- Plain-text model of the composer ----------------------------------
  // Text nodes count their length, <br> and block starts count one newline.

  const walk = (root, visit) => {
    let offset = 0;
    const step = (node) => {
      let piece = null;
      if (node.nodeType === Node.TEXT_NODE) {
        piece = node.data;
      } else if (node.nodeName === 'BR') {
        piece = '\n';
      } else if (node !== root && BLOCKS.has(node.nodeName) && offset > 0) {
        if (visit(null, offset, '\n')) return true;
        offset += 1;
      }
      if (piece !== null) {
        if (visit(node, offset, piece)) return true;
        offset += piece.length;
        return false;
      }
      for (const child of node.childNodes) {
        if (step(child)) return true;
      }
      return false;
    };
    step(root);
    return offset;
  };

  const plainText = (root) => {
    let text = '';
    walk(root, (node, offset, piece) => { text += piece; return false; });
    return text;
  };

  const isRich = (el) => el.getAttribute('contenteditable') === 'true';

  const setNativeValue = (el, value) => {
    const proto = el instanceof HTMLTextAreaElement ? HTMLTextAreaElement.prototype : HTMLInputElement.prototype;
    const setter = Object.getOwnPropertyDescriptor(proto, 'value').set;
    setter.call(el, value);
  };

  const getCursor = (el) => {
    if (!isRich(el)) return el.selectionStart || 0;
    const selection = window.getSelection();
    if (!selection.rangeCount || !el.contains(selection.focusNode)) return plainText(el).length;
    const range = document.createRange();
    range.selectNodeContents(el);
    range.setEnd(selection.focusNode, selection.focusOffset);
    const holder = document.createElement('div');
    holder.appendChild(range.cloneContents());
    return plainText(holder).length;
  };

  // Collapsed range at a plain-text offset; negative or past the end means the end.
  const rangeAt = (el, position) => {
    const range = document.createRange();
    let placed = false;
    if (position >= 0) {
      walk(el, (node, offset, piece) => {
        if (!node || offset + piece.length < position) return false;
        if (node.nodeType === Node.TEXT_NODE) {
          range.setStart(node, position - offset);
        } else if (position === offset) {
          range.setStartBefore(node);
        } else {
          range.setStartAfter(node);
        }
        placed = true;
        return true;
      });
    }
    if (!placed) {
      range.selectNodeContents(el);
      range.collapse(false);
    } else {
      range.collapse(true);
    }
    return range;
  };

  const setCursor = (el, position) => {
    if (!isRich(el)) {
      const end = el.value.length;
      const target = position < 0 ? end : Math.min(position, end);
      el.setSelectionRange(target, target);
      return;
    }
    const selection = window.getSelection();
    selection.removeAllRanges();
    selection.addRange(rangeAt(el, position));
  };

  // Replace [start, end) of the plain text with markup and return the
  // plain-text offset just after the inserted content.
  const spliceMarkup = (el, start, end, markup) => {
    const range = rangeAt(el, start);
    const tail = rangeAt(el, end);
    range.setEnd(tail.startContainer, tail.startOffset);
    range.deleteContents();
    const template = document.createElement('template');
    template.innerHTML = markup;
    const last = template.content.lastChild;
    range.insertNode(template.content);
    const before = document.createRange();
    before.selectNodeContents(el);
    if (last) before.setEndAfter(last); else before.setEnd(range.startContainer, range.startOffset);
    const holder = document.createElement('div');
    holder.appendChild(before.cloneContents());
    return plainText(holder).length;
  };

  const surfaceOps = {
    isRichText: (el) => isRich(el),
    getText: (el) => isRich(el) ? plainText(el) : el.value,
    getMarkup: (el) => isRich(el) ? el.innerHTML : el.value,
    setText: (el, text) => { if (isRich(el)) el.textContent = text; else setNativeValue(el, text); },
    setMarkup: (el, markup) => { if (isRich(el)) el.innerHTML = markup; else setNativeValue(el, markup); },
    getCursor: (el) => getCursor(el),
    setCursor: (el, position) => setCursor(el, position),
    spliceMarkup: (el, start, end, markup) => spliceMarkup(el, start, end, markup),
    focus: (el) => el.focus(),
    emitInput: (el) => el.dispatchEvent(new Event('input', { bubbles: true, cancelable: true })),
    boundingBox: (el) => {
      const rect = el.getBoundingClientRect();
      return { left: rect.left, top: rect.top, width: rect.width, height: rect.height };
    },
    pasteFile: (el, name, content) => {
      const file = new File([new Blob([content], { type: 'text/plain' })], name, { type: 'text/plain' });
      const transfer = new DataTransfer();
      transfer.items.add(file);
      el.dispatchEvent(new ClipboardEvent('paste', { clipboardData: transfer, bubbles: true, cancelable: true }));
    },
  };

  const findSurfaceElement = () => document.querySelector(SURFACE_SELECTOR);

  // -- Injected elements -------------------------------------------------

  const ensureStyles = () => {
    if (document.getElementById(STYLE_ID)) return;
    const style = document.createElement('style');
    style.id = STYLE_ID;
    style.textContent = `
      .${DROPDOWN_CLASS} {
        position: fixed; max-height: 200px; width: 350px; overflow-y: auto;
        background-color: white; border: 1px solid #ddd; border-radius: 8px;
        box-shadow: 0 4px 12px rgba(0, 0, 0, 0.15); z-index: 10000;
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      }
      .${DROPDOWN_CLASS} .codelink-item {
        padding: 8px 12px; cursor: pointer; display: flex; align-items: center;
        gap: 8px; font-size: 14px; color: #333;
      }
      .${DROPDOWN_CLASS} .codelink-item:hover { background-color: #f5f5f5; }
      .${DROPDOWN_CLASS} .codelink-item.selected { background-color: #e6f2ff; }
      .${DROPDOWN_CLASS} .codelink-path {
        color: #888; font-size: 12px; margin-left: auto;
        overflow: hidden; text-overflow: ellipsis; white-space: nowrap;
      }
      .${DROPDOWN_CLASS} .codelink-empty { color: #888; font-style: italic; cursor: default; }
      @media (prefers-color-scheme: dark) {
        .${DROPDOWN_CLASS} { background-color: #2d2d2d; border-color: #444; }
        .${DROPDOWN_CLASS} .codelink-item { color: #eee; }
        .${DROPDOWN_CLASS} .codelink-item:hover { background-color: #3d3d3d; }
        .${DROPDOWN_CLASS} .codelink-item.selected { background-color: #1a3a5c; }
      }
    `;
    document.head.appendChild(style);
  };

  const dropdownOps = {
    show: (position) => {
      ensureStyles();
      if (!dropdown) {
        dropdown = document.createElement('div');
        dropdown.className = DROPDOWN_CLASS;
        document.body.appendChild(dropdown);
      }
      dropdown.style.left = `${position.left}px`;
      dropdown.style.top = `${position.top}px`;
      dropdown.style.width = `${position.width}px`;
      dropdown.innerHTML = '<div class="codelink-item codelink-empty">Loading files...</div>';
      dropdown.style.display = 'block';
    },
    render: (items, selected, emptyMessage) => {
      if (!dropdown) return;
      dropdown.textContent = '';
      if (!items.length) {
        const row = document.createElement('div');
        row.className = 'codelink-item codelink-empty';
        row.textContent = emptyMessage || 'No files found';
        dropdown.appendChild(row);
        return;
      }
      items.forEach((item, index) => {
        const row = document.createElement('div');
        row.className = 'codelink-item' + (index === selected ? ' selected' : '');
        row.dataset.path = item.path;
        for (const [cls, text] of [['codelink-icon', item.icon], ['codelink-name', item.name], ['codelink-path', item.display_path]]) {
          const span = document.createElement('span');
          span.className = cls;
          span.textContent = text;
          row.appendChild(span);
        }
        dropdown.appendChild(row);
        if (index === selected) row.scrollIntoView({ block: 'nearest' });
      });
    },
    hide: () => { if (dropdown) dropdown.style.display = 'none'; },
    remove: () => { if (dropdown) { dropdown.remove(); dropdown = null; } },
  };

  const notify = (message, durationMs) => {
    if (!notification) {
      notification = document.createElement('div');
      notification.className = NOTIFICATION_CLASS;
      notification.style.cssText = `
        position: fixed; bottom: 20px; right: 20px; background-color: #333; color: white;
        padding: 10px 20px; border-radius: 8px; box-shadow: 0 2px 10px rgba(0,0,0,0.2);
        z-index: 10000; max-width: 400px; display: none;
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      `;
      document.body.appendChild(notification);
    }
    notification.textContent = message;
    notification.style.display = 'block';
    clearTimeout(notificationTimer);
    notificationTimer = setTimeout(() => { if (notification) notification.style.display = 'none'; }, durationMs);
  };

  const clearTransient = () => {
    dropdownOps.remove();
    clearTimeout(notificationTimer);
    if (notification) { notification.remove(); notification = null; }
    const style = document.getElementById(STYLE_ID);
    if (style) style.remove();
  };

  // -- Conversation ------------------------------------------------------

  const stripAttributes = (root) => {
    for (const el of root.querySelectorAll('*')) {
      for (const attr of Array.from(el.attributes)) el.removeAttribute(attr.name);
    }
    return root;
  };

  const conversationTurns = () => {
    const turns = [];
    document.querySelectorAll('article').forEach((article) => {
      let user = null;
      let ai = null;
      const userBox = article.querySelector('[class*="max-w-"]');
      const userText = userBox && userBox.querySelector('div.whitespace-pre-wrap');
      if (userText) user = userText.textContent.trim();
      const aiBox = article.querySelector('.markdown.prose');
      if (aiBox) ai = stripAttributes(aiBox.cloneNode(true)).innerHTML.trim();
      if (user || ai) turns.push({ user, ai });
    });
    return turns;
  };

  const container = () => document.querySelector('main') || document.body;

  // -- Listeners ---------------------------------------------------------

  const onMutations = (records) => {
    if (records.every((record) => isOwn(record.target))) return;
    if (mutationTimer) return;
    mutationTimer = setTimeout(() => { mutationTimer = null; emit('mutation'); }, MUTATION_THROTTLE_MS);
  };

  const inSurface = (target) => {
    const surface = findSurfaceElement();
    return !!(surface && target && (target === surface || surface.contains(target)));
  };

  const onInput = (event) => {
    if (event.isTrusted && inSurface(event.target)) emit('input');
  };

  const onKeydown = (event) => {
    if (!event.isTrusted || !dropdownVisible() || !NAV_KEYS.has(event.key)) return;
    event.preventDefault();
    event.stopPropagation();
    emit('keydown', { key: event.key });
  };

  const onClick = (event) => {
    if (!event.isTrusted) return;
    const inDropdown = !!dropdown && dropdown.contains(event.target);
    const row = inDropdown ? event.target.closest('.codelink-item[data-path]') : null;
    if (row) {
      emit('select', { path: row.dataset.path });
      return;
    }
    emit('click', { in_dropdown: inDropdown, on_surface: inSurface(event.target) });
  };

  let observer = null;
  const listen = () => {
    if (observer) return;
    observer = new MutationObserver(onMutations);
    observer.observe(document.body, { childList: true, subtree: true });
    document.addEventListener('input', onInput, true);
    document.addEventListener('keydown', onKeydown, true);
    document.addEventListener('click', onClick, true);
  };

  const detach = () => {
    if (!observer) return;
    observer.disconnect();
    observer = null;
    clearTimeout(mutationTimer);
    mutationTimer = null;
    document.removeEventListener('input', onInput, true);
    document.removeEventListener('keydown', onKeydown, true);
    document.removeEventListener('click', onClick, true);
  };

  window.__codelink = {
    ready: () => location.hostname === 'chatgpt.com' || location.hostname === 'www.chatgpt.com',
    findSurface: () => {
      const el = findSurfaceElement();
      if (!el) return null;
      if (!el.dataset.codelinkId) el.dataset.codelinkId = String(nextSurfaceId++);
      return el.dataset.codelinkId;
    },
    surface: (id, op, args) => {
      const el = document.querySelector(`[data-codelink-id="${id}"]`);
      if (!el) throw new Error('composer element is no longer attached');
      return surfaceOps[op](el, ...(args || []));
    },
    dropdown: (op, args) => dropdownOps[op](...(args || [])),
    notify,
    listen,
    detach,
    clearTransient,
    conversationTurns,
    attachmentLabels: () => Array.from(document.querySelectorAll('.truncate.font-semibold'))
      .map((el) => el.textContent.trim()),
    composerText: () => {
      const parts = [];
      const background = document.getElementById('composer-background');
      if (background) parts.push(background.textContent);
      document.querySelectorAll('.group.relative.inline-block, [class*="flex-nowrap gap-2"]')
        .forEach((el) => parts.push(el.textContent));
      return parts.join('\n');
    },
    snapshot: () => container().innerHTML,
  };
})();
"""
