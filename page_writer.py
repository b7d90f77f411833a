import html
import json
import re
from pathlib import Path

from log import LOGGER
from models import ParseResult
from settings import COMPARISON_NAME_MAX_CHARS, PAGE_FILE_SUFFIX

# (key, label, label keywords) for the comparison view derived from specs.
SPEC_COMPARISON_COLUMNS = (
    ("cpu", "CPU", ("cpu", "프로세서")),
    ("gpu", "GPU", ("gpu", "그래픽")),
    ("ram", "RAM", ("ram", "메모리")),
    ("storage", "저장장치", ("저장", "ssd")),
    ("display", "디스플레이", ("디스플레이", "화면")),
    ("weight", "무게", ("무게",)),
)
DEFAULT_INTRO = "오늘은 {title}에 대해 말씀드릴게요."
DEFAULT_TOPIC_TITLE = "소개"
DEFAULT_CLOSING = "위 내용이 여러분께 도움이 되길 바랍니다."
AFFILIATE_NOTICE = "이 포스팅은 쿠팡파트너스 일환으로 수수료를 지급받습니다."

PAGE_TEMPLATE = """---
import BaseLayout from '../layouts/BaseLayout.astro';
import Header from '../components/Header.astro';

const products = __PRODUCTS__;
const faqs = __FAQS__;
const comparisonData = __COMPARISON_DATA__;
const comparisonSpecs = __COMPARISON_SPECS__;
---

<BaseLayout
  title="__TITLE_ATTR__"
  description="__DESCRIPTION_ATTR__"
>
  <Header />

  <main>
    <article>
      <header class="article-header">
        <h1>__TITLE__</h1>
        <p class="intro-text">__INTRO__</p>
      </header>

      <section class="section summary-section">
        <h2>핵심만 콕!</h2>
        <div class="table-wrapper">
          <table class="summary-table">
            <thead>
              <tr>
                <th>제품명</th>
                <th>핵심 장점</th>
                <th>한 줄 평</th>
                <th>추천 대상</th>
              </tr>
            </thead>
            <tbody>
              {products.map(p => (
                <tr>
                  <td class="product-name-cell">{p.name}</td>
                  <td>{p.keyPoint}</td>
                  <td>{p.summary}</td>
                  <td>{p.target}</td>
                </tr>
              ))}
            </tbody>
          </table>
        </div>
      </section>

      <section class="section topic-intro">
        <h2>__TOPIC_TITLE__</h2>
        __TOPIC_PARAGRAPHS__
        <div class="affiliate-notice">__AFFILIATE_NOTICE__</div>
      </section>

      <section class="section">
        <h2>상세 리뷰</h2>
        {products.map((product, index) => (
          <div class="product-review" id={`product-${product.id}`}>
            <h3 class="product-title">
              <span class="rank-num">{index + 1}.</span>
              {product.name}
            </h3>
            <p class="product-desc">{product.description}</p>
            {product.buyUrl && (
              <div class="product-cta">
                <a href={product.buyUrl} class="buy-link" target="_blank" rel="sponsored nofollow">
                  최저가 보러가기 <span class="arrow">→</span>
                </a>
              </div>
            )}
            <div class="product-details">
              <div class="spec-block">
                <h4>주요 스펙</h4>
                <ul class="spec-list">
                  {product.specs.map(spec => (
                    <li><strong>{spec.label}:</strong> {spec.value}</li>
                  ))}
                </ul>
              </div>
              <div class="pros-block">
                <h4>장점</h4>
                <ul>{product.pros.map(pro => <li>{pro}</li>)}</ul>
              </div>
              <div class="cons-block">
                <h4>단점</h4>
                <ul>{product.cons.map(con => <li>{con}</li>)}</ul>
              </div>
              {product.recommendFor.length > 0 && (
                <div class="recommend-block">
                  <h4>이런 분께 추천합니다</h4>
                  <ul>{product.recommendFor.map(r => <li>{r}</li>)}</ul>
                </div>
              )}
            </div>
          </div>
        ))}
      </section>

      __GUIDE_SECTION__

      <section class="section">
        <h2>제품 비교표</h2>
        <div class="table-wrapper">
          <table class="comparison-table">
            <thead>
              <tr>
                <th>항목</th>
                {comparisonData.map(p => <th>{p.name}</th>)}
              </tr>
            </thead>
            <tbody>
              {comparisonSpecs.map(spec => (
                <tr>
                  <th>{spec.label}</th>
                  {comparisonData.map(p => <td>{p[spec.key] || '-'}</td>)}
                </tr>
              ))}
            </tbody>
          </table>
        </div>
      </section>

      <section class="section closing">
        <h2>마무리</h2>
        __CLOSING_PARAGRAPHS__
      </section>

      {faqs.length > 0 && (
        <section class="section faq-section">
          <h2>자주 묻는 질문 (FAQ)</h2>
          <div class="faq-list">
            {faqs.map(faq => (
              <details class="faq-item">
                <summary>{faq.question}</summary>
                <p>{faq.answer}</p>
              </details>
            ))}
          </div>
        </section>
      )}
    </article>
  </main>
</BaseLayout>

<style>
  main { max-width: 900px; margin: 0 auto; padding: 0 20px 80px; }
  .article-header { padding: 3rem 0 2rem; border-bottom: 2px solid #1A1A1A; margin-bottom: 2rem; }
  .section { padding: 2.5rem 0; border-bottom: 1px solid #eee; }
  .table-wrapper { overflow-x: auto; border: 1px solid #ddd; border-radius: 8px; }
  .summary-table, .comparison-table { width: 100%; border-collapse: collapse; }
  .affiliate-notice { margin-top: 24px; padding: 12px 16px; background: #FEF3C7; border-radius: 6px; color: #92400E; }
  .rank-num { color: #256FFF; }
  .buy-link { display: inline-flex; gap: 10px; padding: 14px 28px; background: #FF455B; color: #fff; border-radius: 8px; text-decoration: none; }
  .pros-block ul li { color: #166534; }
  .cons-block ul li { color: #991B1B; }
  .recommend-block ul li { color: #1E40AF; }
  .faq-item { border: 1px solid #ddd; border-radius: 8px; overflow: hidden; }
</style>
"""


def generate_slug(title: str) -> str:
    slug = (title or "").lower()
    slug = re.sub(r"[^a-z0-9가-힣\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-").strip()


def column_key(label: str) -> str:
    return re.sub(r"\s+", "_", label.strip().lower())


def to_json(value) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2)


def build_comparison_view(result: ParseResult) -> tuple[list[dict], list[dict]]:
    table = result.comparison_table
    if len(table) > 1:
        headers = table[0]
        rows: list[dict] = []
        for row in table[1:]:
            item = {"name": row[0] if row else ""}
            for idx, header in enumerate(headers[1:], start=1):
                value = row[idx] if idx < len(row) else ""
                item[column_key(header)] = value or "-"
            rows.append(item)
        specs = [{"key": column_key(header), "label": header} for header in headers[1:]]
        return rows, specs

    rows = []
    for product in result.products:
        name = product.name
        if len(name) > COMPARISON_NAME_MAX_CHARS:
            name = name[:COMPARISON_NAME_MAX_CHARS] + "..."
        item = {"name": name}
        for key, _, keywords in SPEC_COMPARISON_COLUMNS:
            value = "-"
            for spec in product.specs:
                label = spec.label.lower()
                if any(keyword in label for keyword in keywords):
                    value = spec.value
                    break
            item[key] = value
        rows.append(item)
    specs = [{"key": key, "label": label} for key, label, _ in SPEC_COMPARISON_COLUMNS]
    return rows, specs


def escape_markup(text: str, quote: bool = False) -> str:
    # Astro treats braces in markup as expressions.
    escaped = html.escape(text or "", quote=quote)
    return escaped.replace("{", "&#123;").replace("}", "&#125;")


def render_paragraphs(text: str, indent: str = "        ") -> str:
    paragraphs = [line.strip() for line in (text or "").split("\n") if line.strip()]
    return f"\n{indent}".join(f"<p>{escape_markup(line)}</p>" for line in paragraphs)


def render_astro_page(result: ParseResult) -> str:
    data = result.to_dict()
    comparison_rows, comparison_specs = build_comparison_view(result)
    intro = result.intro.strip() or DEFAULT_INTRO.format(title=result.title)
    description = (result.excerpt or intro).replace("\n", " ")[:150]
    guide_section = ""
    if result.selection_guide.strip():
        guide_section = (
            '<section class="section guide">\n'
            "        <h2>선택 가이드</h2>\n"
            f"        {render_paragraphs(result.selection_guide)}\n"
            "      </section>"
        )
    replacements = {
        "__PRODUCTS__": to_json(data["products"]),
        "__FAQS__": to_json(data["faqs"]),
        "__COMPARISON_DATA__": to_json(comparison_rows),
        "__COMPARISON_SPECS__": to_json(comparison_specs),
        "__TITLE_ATTR__": escape_markup(result.title, quote=True),
        "__DESCRIPTION_ATTR__": escape_markup(description, quote=True),
        "__TITLE__": escape_markup(result.title),
        "__INTRO__": escape_markup(intro).replace("\n", "<br />"),
        "__TOPIC_TITLE__": escape_markup(result.topic_title or DEFAULT_TOPIC_TITLE),
        "__TOPIC_PARAGRAPHS__": render_paragraphs(result.topic_explanation),
        "__AFFILIATE_NOTICE__": AFFILIATE_NOTICE,
        "__GUIDE_SECTION__": guide_section,
        "__CLOSING_PARAGRAPHS__": render_paragraphs(result.closing or DEFAULT_CLOSING),
    }
    pattern = re.compile("|".join(re.escape(placeholder) for placeholder in replacements))
    return pattern.sub(lambda match: replacements[match.group(0)], PAGE_TEMPLATE)


def write_page(result: ParseResult, pages_dir: Path, slug: str) -> Path:
    pages_dir.mkdir(parents=True, exist_ok=True)
    path = pages_dir / f"{slug}{PAGE_FILE_SUFFIX}"
    path.write_text(render_astro_page(result), encoding="utf-8")
    LOGGER.info("페이지 생성: %s", path)
    return path
