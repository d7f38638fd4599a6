"""
CodeNANO Preview — Starter Templates

The catalog a new project can start from. Each template fills all three
buffers and fixes the project mode; the editor loads one as an unsaved
project.
"""

from __future__ import annotations

from dataclasses import dataclass

from engine.preview.types import ProjectMode, SourceBuffers

DEFAULT_TEMPLATE_ID = "html-starter"


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    description: str
    mode: ProjectMode
    buffers: SourceBuffers

    def summary(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "description": self.description, "mode": self.mode}


_HTML_STARTER = Template(
    id="html-starter",
    name="HTML Starter",
    description="Basic HTML, CSS, and JavaScript starter template",
    mode="html",
    buffers=SourceBuffers(
        html="""<div class="welcome">
  <div class="card">
    <h1>Welcome to CodeNANO</h1>
    <p>Start building amazing projects with HTML, CSS and JavaScript!</p>
    <button onclick="showMessage()">Click Me!</button>
    <div id="message" class="message hidden">Great! Paste any snippet here and watch it run.</div>
  </div>
</div>""",
        css="""body {
  margin: 0;
  font-family: system-ui, sans-serif;
}

.welcome {
  min-height: 100vh;
  display: flex;
  align-items: center;
  justify-content: center;
  background: linear-gradient(135deg, #3b82f6, #9333ea);
}

.card {
  background: white;
  border-radius: 12px;
  padding: 2rem;
  max-width: 28rem;
  text-align: center;
  box-shadow: 0 20px 40px rgba(0, 0, 0, 0.2);
}

button {
  width: 100%;
  padding: 0.75rem 1.5rem;
  border: 0;
  border-radius: 8px;
  color: white;
  font-weight: 600;
  background: linear-gradient(90deg, #3b82f6, #9333ea);
  cursor: pointer;
}

.message {
  margin-top: 1rem;
  padding: 1rem;
  border-radius: 8px;
  background: #dcfce7;
  color: #166534;
  animation: fadeIn 0.5s ease-in-out;
}

.hidden {
  display: none;
}

@keyframes fadeIn {
  from { opacity: 0; transform: translateY(20px); }
  to { opacity: 1; transform: translateY(0); }
}""",
        js="""console.log('CodeNANO loaded!');

function showMessage() {
  document.getElementById('message').classList.remove('hidden');
  console.log('Button clicked!');
}""",
    ),
)

_REACT_COUNTER = Template(
    id="react-counter",
    name="React Counter",
    description="Simple React counter application",
    mode="react",
    buffers=SourceBuffers(
        html='<div id="root"></div>',
        css="""body {
  font-family: system-ui, sans-serif;
  display: flex;
  justify-content: center;
  padding-top: 4rem;
}

button {
  font-size: 1.25rem;
  margin: 0 0.5rem;
  padding: 0.5rem 1rem;
}""",
        js="""const { useState } = React;

function Counter() {
  const [count, setCount] = useState(0);
  return (
    <div style={{ textAlign: 'center' }}>
      <h1>Count: {count}</h1>
      <button onClick={() => setCount(count - 1)}>-</button>
      <button onClick={() => setCount(count + 1)}>+</button>
    </div>
  );
}

ReactDOM.createRoot(document.getElementById('root')).render(<Counter />);""",
    ),
)

_VUE_TODO = Template(
    id="vue-todo",
    name="Vue Todo List",
    description="Vue 3 todo list with reactive state",
    mode="vue",
    buffers=SourceBuffers(
        html="""<div id="app">
  <h1>Todos</h1>
  <input v-model="draft" @keyup.enter="add" placeholder="What needs doing?">
  <ul>
    <li v-for="todo in todos" :key="todo">{{ todo }}</li>
  </ul>
</div>""",
        css="""#app {
  font-family: system-ui, sans-serif;
  max-width: 24rem;
  margin: 3rem auto;
}""",
        js="""Vue.createApp({
  data() {
    return { draft: '', todos: ['Learn Vue'] };
  },
  methods: {
    add() {
      if (this.draft.trim()) this.todos.push(this.draft.trim());
      this.draft = '';
    }
  }
}).mount('#app');""",
    ),
)

_PYTHON_BASICS = Template(
    id="python-basics",
    name="Python Basics",
    description="Basic Python script with examples",
    mode="python",
    buffers=SourceBuffers(
        html='<p>Output appears in the console panel.</p>',
        css="",
        js="""def greet(name):
    return f"Hello, {name}!"

print(greet("CodeNANO"))

squares = [n * n for n in range(1, 6)]
print("Squares:", squares)

total = sum(squares)
print(f"Sum of squares: {total}")""",
    ),
)

_MARKDOWN_DOC = Template(
    id="markdown-doc",
    name="Markdown Document",
    description="Markdown document with formatting examples",
    mode="markdown",
    buffers=SourceBuffers(
        html="""# My Document

Write **bold**, *italic* and `inline code`.

## Lists

- First item
- Second item

## Code

```js
console.log('Hello from Markdown');
```

> Quotes work too.""",
        css=""".markdown-body {
  font-family: system-ui, sans-serif;
  max-width: 40rem;
  margin: 2rem auto;
  line-height: 1.6;
}

.markdown-body pre {
  background: #f3f4f6;
  padding: 1rem;
  border-radius: 6px;
}""",
        js="",
    ),
)

_NEXTJS_APP = Template(
    id="nextjs-app",
    name="Next.js App",
    description="Next.js application starter",
    mode="nextjs",
    buffers=SourceBuffers(
        html='<div id="root"></div>',
        css="""main {
  font-family: system-ui, sans-serif;
  text-align: center;
  padding-top: 4rem;
}""",
        js="""'use client'
import { useState } from 'react'

export default function Home() {
  const [clicks, setClicks] = useState(0)
  return (
    <main>
      <h1>Welcome to Next.js</h1>
      <button onClick={() => setClicks(clicks + 1)}>Clicked {clicks} times</button>
    </main>
  )
}""",
    ),
)

_ASTRO_PAGE = Template(
    id="astro-page",
    name="Astro Page",
    description="Astro component with frontmatter and expressions",
    mode="astro",
    buffers=SourceBuffers(
        html="""---
const title = "Hello, Astro!";
const items = ["Fast", "Content-focused", "Component islands"];
---
<main>
  <h1>{title}</h1>
  <p>{items.length} ideas: {items.join(", ")}</p>
</main>""",
        css="""main {
  font-family: system-ui, sans-serif;
  max-width: 32rem;
  margin: 3rem auto;
}""",
        js="",
    ),
)

TEMPLATES: tuple[Template, ...] = (
    _HTML_STARTER,
    _REACT_COUNTER,
    _VUE_TODO,
    _PYTHON_BASICS,
    _MARKDOWN_DOC,
    _NEXTJS_APP,
    _ASTRO_PAGE,
)

_BY_ID = {template.id: template for template in TEMPLATES}


def get_template(template_id: str) -> Template | None:
    return _BY_ID.get(template_id)


def default_template() -> Template:
    return _BY_ID[DEFAULT_TEMPLATE_ID]
